"""
Core constants for HCIBUS.

Centralised bus contract (paths, interfaces, members, signatures), error code
ranges and the subset of HCI opcodes/events the adapter uses.
"""

# D-Bus Core Constants
DBUS_INTERFACE_DBUS = "org.freedesktop.DBus"
DBUS_INTERFACE_LOCAL = "org.freedesktop.DBus.Local"
DBUS_SIGNAL_DISCONNECTED = "Disconnected"
DBUS_SIGNAL_NAME_OWNER_CHANGED = "NameOwnerChanged"
DBUS_SIGNAL_NAME_ACQUIRED = "NameAcquired"

# Adapter Core Constants
BASE_PATH = "/org/bluez"
BASE_INTERFACE = "org.bluez"

DEVICE_PATH = BASE_PATH + "/Device"
DEVICE_INTERFACE = BASE_INTERFACE + ".Device"

MANAGER_PATH = BASE_PATH + "/Manager"
MANAGER_INTERFACE = BASE_INTERFACE + ".Manager"

ERROR_INTERFACE = BASE_INTERFACE + ".Error"

# PIN agent (external authentication service)
PINAGENT_SERVICE_NAME = BASE_INTERFACE + ".PinAgent"
PINAGENT_INTERFACE = PINAGENT_SERVICE_NAME
PINAGENT_PATH = BASE_PATH + "/PinAgent"
PIN_REQUEST = "PinRequest"
PIN_REQUEST_SIGNATURE = "bay"

# Timing
PIN_REQUEST_TIMEOUT = 30  # seconds
DBUS_RECONNECT_INTERVAL = 5  # seconds

# Path roles / device ids
DEVICE_ROOT_ID = 0x0001
DEVICE_PATH_ID = 0x0002
MANAGER_ROOT_ID = 0x0100
INVALID_DEV_ID = 0xFFFF

# ---------------------------------------------------------------------------
# Error code ranges
# ---------------------------------------------------------------------------
BLUEZ_EBT_OFFSET = 0x00000000
BLUEZ_EDBUS_OFFSET = 0x00010000
BLUEZ_ESYSTEM_OFFSET = 0x00020000

BLUEZ_EDBUS_UNKNOWN_METHOD = 0x01 + BLUEZ_EDBUS_OFFSET
BLUEZ_EDBUS_WRONG_SIGNATURE = 0x02 + BLUEZ_EDBUS_OFFSET
BLUEZ_EDBUS_WRONG_PARAM = 0x03 + BLUEZ_EDBUS_OFFSET
BLUEZ_EDBUS_RECORD_NOT_FOUND = 0x04 + BLUEZ_EDBUS_OFFSET
BLUEZ_EDBUS_NO_MEM = 0x05 + BLUEZ_EDBUS_OFFSET
BLUEZ_EDBUS_CONN_NOT_FOUND = 0x06 + BLUEZ_EDBUS_OFFSET
BLUEZ_EDBUS_UNKNOWN_PATH = 0x07 + BLUEZ_EDBUS_OFFSET
BLUEZ_EDBUS_NOT_IMPLEMENTED = 0x08 + BLUEZ_EDBUS_OFFSET


# ---------------------------------------------------------------------------
# Device interface members (method name, signature)
# ---------------------------------------------------------------------------
DEV_GET_ADDRESS = "GetAddress"
DEV_GET_ALIAS = "GetAlias"
DEV_GET_COMPANY = "GetCompany"
DEV_GET_DISCOVERABLE_TO = "GetDiscoverableTimeout"
DEV_GET_FEATURES = "GetFeatures"
DEV_GET_MANUFACTURER = "GetManufacturer"
DEV_GET_MODE = "GetMode"
DEV_GET_NAME = "GetName"
DEV_GET_REVISION = "GetRevision"
DEV_GET_VERSION = "GetVersion"

DEV_IS_CONNECTABLE = "IsConnectable"
DEV_IS_DISCOVERABLE = "IsDiscoverable"

DEV_SET_ALIAS = "SetAlias"
DEV_SET_CLASS = "SetClass"
DEV_SET_DISCOVERABLE_TO = "SetDiscoverableTimeout"
DEV_SET_MODE = "SetMode"
DEV_SET_NAME = "SetName"

DEV_DISCOVER = "Discover"
DEV_DISCOVER_CACHE = "DiscoverCache"
DEV_DISCOVER_CANCEL = "DiscoverCancel"
DEV_DISCOVER_SERVICE = "DiscoverService"

DEV_LAST_SEEN = "LastSeen"
DEV_LAST_USED = "LastUsed"

DEV_REMOTE_ALIAS = "RemoteAlias"
DEV_REMOTE_NAME = "RemoteName"
DEV_REMOTE_VERSION = "RemoteVersion"

DEV_CREATE_BONDING = "CreateBonding"
DEV_LIST_BONDINGS = "ListBondings"
DEV_HAS_BONDING_NAME = "HasBonding"
DEV_REMOVE_BONDING = "RemoveBonding"

DEV_PIN_CODE_LENGTH = "PinCodeLength"
DEV_ENCRYPTION_KEY_SIZE = "EncryptionKeySize"

DEV_GET_ADDRESS_SIGNATURE = ""
DEV_GET_ALIAS_SIGNATURE = ""
DEV_GET_COMPANY_SIGNATURE = ""
DEV_GET_DISCOVERABLE_TO_SIGNATURE = ""
DEV_GET_FEATURES_SIGNATURE = ""
DEV_GET_MANUFACTURER_SIGNATURE = ""
DEV_GET_MODE_SIGNATURE = ""
DEV_GET_NAME_SIGNATURE = ""
DEV_GET_REVISION_SIGNATURE = ""
DEV_GET_VERSION_SIGNATURE = ""
DEV_IS_CONNECTABLE_SIGNATURE = ""
DEV_IS_DISCOVERABLE_SIGNATURE = ""
DEV_SET_ALIAS_SIGNATURE = "ss"
DEV_SET_CLASS_SIGNATURE = "ss"
DEV_SET_DISCOVERABLE_TO_SIGNATURE = "u"
DEV_SET_MODE_SIGNATURE = "y"
DEV_SET_NAME_SIGNATURE = "s"
DEV_DISCOVER_SIGNATURE = ""
DEV_DISCOVER_CACHE_SIGNATURE = ""
DEV_DISCOVER_CANCEL_SIGNATURE = ""
DEV_DISCOVER_SERVICE_SIGNATURE = "ss"
DEV_LAST_SEEN_SIGNATURE = "s"
DEV_LAST_USED_SIGNATURE = "s"
DEV_REMOTE_ALIAS_SIGNATURE = "s"
DEV_REMOTE_NAME_SIGNATURE = "s"
DEV_REMOTE_VERSION_SIGNATURE = "s"
DEV_CREATE_BONDING_SIGNATURE = "s"
DEV_LIST_BONDINGS_SIGNATURE = ""
DEV_HAS_BONDING_SIGNATURE = "s"
DEV_REMOVE_BONDING_SIGNATURE = "s"
DEV_PIN_CODE_LENGTH_SIGNATURE = "s"
DEV_ENCRYPTION_KEY_SIZE_SIGNATURE = "s"

# Device signals
DEV_SIG_MODE_CHANGED = "ModeChanged"
DEV_SIG_NAME_CHANGED = "NameChanged"
DEV_SIG_BONDING_CREATED = "BondingCreated"
DEV_SIG_DISCOVER_START = "DiscoverStart"
DEV_SIG_DISCOVER_COMPLETE = "DiscoverComplete"
DEV_SIG_DISCOVER_RESULT = "DiscoverResult"
DEV_SIG_REMOTE_NAME = "RemoteName"
DEV_SIG_REMOTE_NAME_FAILED = "RemoteNameFailed"

# ---------------------------------------------------------------------------
# Manager interface members
# ---------------------------------------------------------------------------
MGR_DEVICE_LIST = "DeviceList"
MGR_DEFAULT_DEVICE = "DefaultDevice"

MGR_DEVICE_LIST_SIGNATURE = ""
MGR_DEFAULT_DEVICE_SIGNATURE = ""
MGR_REPLY_DEVICE_LIST_SIGNATURE = "a(ssssas)"

BLUEZ_MGR_DEV_ADDED = "DeviceAdded"
BLUEZ_MGR_DEV_REMOVED = "DeviceRemoved"

# ---------------------------------------------------------------------------
# Scan modes
# ---------------------------------------------------------------------------
SCAN_DISABLED = 0x00
SCAN_INQUIRY = 0x01
SCAN_PAGE = 0x02

MODE_OFF = 0x00
MODE_CONNECTABLE = 0x01
MODE_DISCOVERABLE = 0x02
MODE_UNKNOWN = 0xFF

# ---------------------------------------------------------------------------
# HCI subset
# ---------------------------------------------------------------------------
HCI_MAX_DEV = 16
HCI_MAX_NAME_LENGTH = 248
HCI_PIN_CODE_MAX = 16

HCI_COMMAND_PKT = 0x01
HCI_EVENT_PKT = 0x04

# HCI socket options
SOL_HCI = 0
HCI_FILTER = 2

HCI_DEV_NONE = 0xFFFF

# Device flags (bit numbers in dev_opt / hci_dev_info.flags)
HCI_UP = 0
HCI_INIT = 1
HCI_RUNNING = 2
HCI_PSCAN = 3
HCI_ISCAN = 4
HCI_AUTH = 5
HCI_ENCRYPT = 6
HCI_INQUIRY = 7
HCI_RAW = 8
HCI_SECMGR = 9

# Device bus types
HCI_DEVICE_TYPES = {
    0: "VIRTUAL",
    1: "USB",
    2: "PCCARD",
    3: "UART",
    4: "RS232",
    5: "PCI",
    6: "SDIO",
}


# Command groups / opcodes
OGF_LINK_CTL = 0x01
OCF_INQUIRY = 0x0001
OCF_INQUIRY_CANCEL = 0x0002
OCF_AUTH_REQUESTED = 0x0011
OCF_PIN_CODE_REPLY = 0x000D
OCF_PIN_CODE_NEG_REPLY = 0x000E
OCF_REMOTE_NAME_REQ = 0x0019

OGF_HOST_CTL = 0x03
OCF_CHANGE_LOCAL_NAME = 0x0013
OCF_READ_LOCAL_NAME = 0x0014
OCF_READ_SCAN_ENABLE = 0x0019
OCF_WRITE_SCAN_ENABLE = 0x001A

OGF_INFO_PARAM = 0x04
OCF_READ_LOCAL_VERSION = 0x0001

# Events
EVT_INQUIRY_COMPLETE = 0x01
EVT_INQUIRY_RESULT = 0x02
EVT_AUTH_COMPLETE = 0x06
EVT_REMOTE_NAME_REQ_COMPLETE = 0x07
EVT_CMD_COMPLETE = 0x0E
EVT_CMD_STATUS = 0x0F
EVT_PIN_CODE_REQ = 0x16
EVT_INQUIRY_RESULT_WITH_RSSI = 0x22
EVT_STACK_INTERNAL = 0xFD

# Stack internal device events
EVT_SI_DEVICE = 0x0002
HCI_DEV_REG = 1
HCI_DEV_UNREG = 2
HCI_DEV_UP = 3
HCI_DEV_DOWN = 4

# General/unlimited inquiry access code
GIAC_LAP = 0x9E8B33
INQUIRY_LENGTH = 8
