"""
Read access to the adapter's key/value text files.

Each line holds ``<key> <value>``; keys are Bluetooth addresses and compare
case-insensitively.  The adapter only ever reads these files (the peer name
cache lives at ``<storage>/<local address>/names``).
"""

from __future__ import annotations

import os
from typing import Optional

from hcibus.core.log import print_and_log, LOG__DEBUG


def textfile_get(filename: os.PathLike, key: str) -> Optional[str]:
    """Return the value stored for *key* in *filename*, or None.

    A missing or unreadable file is treated like a missing key.
    """
    wanted = key.upper()
    try:
        with open(filename, "r", encoding="utf-8", errors="replace") as fh:
            for line in fh:
                entry_key, sep, value = line.rstrip("\n").partition(" ")
                if sep and entry_key.upper() == wanted:
                    return value
    except FileNotFoundError:
        return None
    except OSError as exc:
        print_and_log(f"[-] Can't read {filename}: {exc}", LOG__DEBUG)
    return None


def names_file(storage_dir: str, local_address: str) -> str:
    return os.path.join(storage_dir, local_address, "names")


def get_cached_name(storage_dir: str, local_address: str, peer_address: str) -> Optional[str]:
    """Look up a previously learned remote name."""
    return textfile_get(names_file(storage_dir, local_address), peer_address)


def oui_to_company(oui_file: os.PathLike, address: str) -> Optional[str]:
    """Organisation owning the first three octets of *address*.

    *oui_file* is the IEEE registry in its text form, where assignments read
    ``XX-XX-XX   (hex)<TAB><TAB>Company``.
    """
    prefix = address[:8].replace(":", "-").upper()
    try:
        with open(oui_file, "r", encoding="utf-8", errors="replace") as fh:
            for line in fh:
                if not line.upper().startswith(prefix):
                    continue
                _, marker, company = line.partition("(hex)")
                if marker:
                    return company.strip() or None
    except FileNotFoundError:
        return None
    except OSError as exc:
        print_and_log(f"[-] Can't read {oui_file}: {exc}", LOG__DEBUG)
    return None
