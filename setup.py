from setuptools import setup, find_packages

# Check if PyGObject (gi) is already available system-wide
# so pip does not try to build it from source over a distro package.
_HAS_PYGOBJECT = False
try:
    import gi
    gi.require_version('GLib', '2.0')
    from gi.repository import GLib
    _HAS_PYGOBJECT = True
except (ImportError, ValueError, AttributeError):
    _HAS_PYGOBJECT = False

install_requires = [
    "dbus-python>=1.2.0",
    "PyYAML>=6.0",
]

extras_require = {
    "test": ["pytest>=8.0.0"],
}

# The daemon and agent modes run on the GLib main loop
if not _HAS_PYGOBJECT:
    install_requires.append("PyGObject>=3.48.0")
    extras_require["glib"] = []
else:
    extras_require["glib"] = ["PyGObject>=3.48.0"]

setup(
    name="hcibus",
    version="0.4.0",
    description="Exports local Bluetooth HCI devices as objects on the D-Bus message bus",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        'console_scripts': [
            'hcibus=hcibus.cli:main',
        ],
    },
    python_requires='>=3.8',
)
