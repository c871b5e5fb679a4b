"""
CoreAudio backend for macOS audio device queries.

Uses CoreAudio's C API via ctypes to enumerate devices, read their names,
check for input streams and read kAudioDevicePropertyDeviceIsRunningSomewhere,
the "in use by any process" flag the trigger watches.
"""

import ctypes
from ctypes import POINTER, Structure, byref, c_char_p, c_int32, c_uint32, c_void_p
import sys
from typing import List, Optional

from hidock_trigger.core.logging_utils import get_module_logger

logger = get_module_logger("CoreAudio")

# Only available on macOS
if sys.platform != "darwin":
    raise ImportError("CoreAudio backend only available on macOS")


# CoreAudio constants (FourCC codes)
kAudioObjectSystemObject = 1
kAudioHardwarePropertyDevices = 0x64657623  # 'dev#'
kAudioObjectPropertyScopeGlobal = 0x676C6F62  # 'glob'
kAudioObjectPropertyScopeInput = 0x696E7074  # 'inpt'
kAudioObjectPropertyElementMain = 0

kAudioObjectPropertyName = 0x6C6E616D  # 'lnam'
kAudioDevicePropertyStreams = 0x73746D23  # 'stm#'
kAudioDevicePropertyDeviceIsRunningSomewhere = 0x676F6E65  # 'gone'

kCFStringEncodingUTF8 = 0x08000100


class CoreAudioError(OSError):
    """Non-zero OSStatus from a CoreAudio property query."""

    def __init__(self, status: int, what: str) -> None:
        super().__init__(f"CoreAudio {what} failed (OSStatus {status})")
        self.status = status


class AudioObjectPropertyAddress(Structure):
    """CoreAudio property address structure."""
    _fields_ = [
        ("mSelector", c_uint32),
        ("mScope", c_uint32),
        ("mElement", c_uint32),
    ]


# Load CoreAudio framework
try:
    _core_audio = ctypes.CDLL(
        "/System/Library/Frameworks/CoreAudio.framework/CoreAudio"
    )
    _core_foundation = ctypes.CDLL(
        "/System/Library/Frameworks/CoreFoundation.framework/CoreFoundation"
    )
    COREAUDIO_AVAILABLE = True
except OSError as e:
    logger.warning("Failed to load CoreAudio: %s", e)
    COREAUDIO_AVAILABLE = False


if COREAUDIO_AVAILABLE:
    _AudioObjectGetPropertyDataSize = _core_audio.AudioObjectGetPropertyDataSize
    _AudioObjectGetPropertyDataSize.argtypes = [
        c_uint32,  # inObjectID
        POINTER(AudioObjectPropertyAddress),  # inAddress
        c_uint32,  # inQualifierDataSize
        c_void_p,  # inQualifierData
        POINTER(c_uint32),  # outDataSize
    ]
    _AudioObjectGetPropertyDataSize.restype = c_int32

    _AudioObjectGetPropertyData = _core_audio.AudioObjectGetPropertyData
    _AudioObjectGetPropertyData.argtypes = [
        c_uint32,  # inObjectID
        POINTER(AudioObjectPropertyAddress),  # inAddress
        c_uint32,  # inQualifierDataSize
        c_void_p,  # inQualifierData
        POINTER(c_uint32),  # ioDataSize
        c_void_p,  # outData
    ]
    _AudioObjectGetPropertyData.restype = c_int32

    _CFStringGetCString = _core_foundation.CFStringGetCString
    _CFStringGetCString.argtypes = [c_void_p, c_char_p, c_uint32, c_uint32]
    _CFStringGetCString.restype = ctypes.c_bool

    _CFRelease = _core_foundation.CFRelease
    _CFRelease.argtypes = [c_void_p]
    _CFRelease.restype = None


def _address(selector: int, scope: int = kAudioObjectPropertyScopeGlobal) -> AudioObjectPropertyAddress:
    return AudioObjectPropertyAddress(
        mSelector=selector,
        mScope=scope,
        mElement=kAudioObjectPropertyElementMain,
    )


def _cfstring_to_python(cfstring: c_void_p) -> str:
    if not cfstring:
        return ""

    buffer = ctypes.create_string_buffer(256)
    if _CFStringGetCString(cfstring, buffer, 256, kCFStringEncodingUTF8):
        return buffer.value.decode("utf-8")
    return ""


def get_device_ids() -> List[int]:
    """Return the IDs of every audio device known to the HAL."""
    address = _address(kAudioHardwarePropertyDevices)

    data_size = c_uint32()
    status = _AudioObjectGetPropertyDataSize(
        kAudioObjectSystemObject,
        byref(address),
        0,
        None,
        byref(data_size),
    )
    if status != 0:
        raise CoreAudioError(status, "device list size")

    num_devices = data_size.value // ctypes.sizeof(c_uint32)
    device_ids = (c_uint32 * num_devices)()

    status = _AudioObjectGetPropertyData(
        kAudioObjectSystemObject,
        byref(address),
        0,
        None,
        byref(data_size),
        device_ids,
    )
    if status != 0:
        raise CoreAudioError(status, "device list")

    return list(device_ids)


def get_device_name(device_id: int) -> Optional[str]:
    address = _address(kAudioObjectPropertyName)

    data_size = c_uint32(ctypes.sizeof(c_void_p))
    cfstring = c_void_p()

    status = _AudioObjectGetPropertyData(
        device_id,
        byref(address),
        0,
        None,
        byref(data_size),
        byref(cfstring),
    )
    if status != 0 or not cfstring:
        return None

    result = _cfstring_to_python(cfstring)
    _CFRelease(cfstring)
    return result or None


def device_has_input_streams(device_id: int) -> bool:
    address = _address(kAudioDevicePropertyStreams, kAudioObjectPropertyScopeInput)

    data_size = c_uint32()
    status = _AudioObjectGetPropertyDataSize(
        device_id,
        byref(address),
        0,
        None,
        byref(data_size),
    )

    # If we can get the size and it's > 0, device has input streams
    return status == 0 and data_size.value > 0


def is_device_running_somewhere(device_id: int) -> bool:
    """True when any process on the system has the device running."""
    address = _address(kAudioDevicePropertyDeviceIsRunningSomewhere)

    data_size = c_uint32(ctypes.sizeof(c_uint32))
    value = c_uint32()

    status = _AudioObjectGetPropertyData(
        device_id,
        byref(address),
        0,
        None,
        byref(data_size),
        byref(value),
    )
    if status != 0:
        raise CoreAudioError(status, "running-somewhere query")

    return value.value != 0


class CoreAudioBackend:
    """DeviceBackend over the CoreAudio HAL."""

    def device_ids(self) -> List[int]:
        if not COREAUDIO_AVAILABLE:
            return []
        return get_device_ids()

    def get_name(self, device_id: int) -> Optional[str]:
        return get_device_name(device_id)

    def has_input(self, device_id: int) -> bool:
        return device_has_input_streams(device_id)

    def is_active(self, device_id: int) -> bool:
        return is_device_running_somewhere(device_id)


__all__ = [
    "COREAUDIO_AVAILABLE",
    "CoreAudioBackend",
    "CoreAudioError",
    "get_device_ids",
    "get_device_name",
    "device_has_input_streams",
    "is_device_running_somewhere",
]
