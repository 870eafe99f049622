"""
File Association Registration
=============================

Builds and applies the registry table that routes container files to the
thumbnail handler. This is deployment tooling, separate from the
extraction pipeline.

Table (all keys under HKEY_CURRENT_USER):

    <root>\\CLSID\\<clsid>                         (Default) = handler name
    <root>\\CLSID\\<clsid>\\InProcServer32         (Default) = module path
    <root>\\CLSID\\<clsid>\\InProcServer32         ThreadingModel = Apartment
    <root>\\<ext>                                  Treatment = 0 (integer)
    <root>\\<ext>\\ShellEx\\<thumbnail provider>   (Default) = clsid

After registering, the store is told that file associations changed so
previously cached blank thumbnails are dropped.

Example:
    from kiseki_thumb.registration import (
        MemoryRegistryStore, build_registration_entries, register,
    )

    store = MemoryRegistryStore()
    register(store, build_registration_entries(r"C:\\kiseki\\thumb.dll"))
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

from kiseki_thumb.config import RegistrationConfig, settings
from kiseki_thumb.errors import RegistrationError
from kiseki_thumb.models.registry import RegistryEntry, ValueType


logger = logging.getLogger(__name__)


# Shell extension slot for IThumbnailProvider handlers
THUMBNAIL_PROVIDER_SHELLEX = "{e357fccd-a995-4576-b01f-234630154e96}"


# =============================================================================
# Table Construction
# =============================================================================

def _clsid_key(config: RegistrationConfig) -> str:
    return f"{config.classes_root}\\CLSID\\{config.clsid}"


def _shellex_key(config: RegistrationConfig, extension: str) -> str:
    return f"{config.classes_root}\\{extension}\\ShellEx\\{THUMBNAIL_PROVIDER_SHELLEX}"


def build_registration_entries(
    module_path: str,
    config: Optional[RegistrationConfig] = None,
) -> List[RegistryEntry]:
    """
    Build the ordered list of values written on registration.

    Args:
        module_path: Path of the in-process server module
        config: Registration settings (defaults to global settings)

    Returns:
        Entries in the order they must be applied
    """
    if not module_path:
        raise ValueError("module_path must be non-empty")
    config = config or settings.registration

    clsid_key = _clsid_key(config)
    server_key = f"{clsid_key}\\InProcServer32"
    entries = [
        RegistryEntry(key_path=clsid_key, value_type=ValueType.STRING, value=config.handler_name),
        RegistryEntry(key_path=server_key, value_type=ValueType.STRING, value=module_path),
        RegistryEntry(
            key_path=server_key,
            value_name="ThreadingModel",
            value_type=ValueType.STRING,
            value=config.threading_model,
        ),
    ]
    for ext in config.extensions:
        entries.append(
            RegistryEntry(
                key_path=f"{config.classes_root}\\{ext}",
                value_name="Treatment",
                value_type=ValueType.INTEGER,
                value=0,
            )
        )
        entries.append(
            RegistryEntry(
                key_path=_shellex_key(config, ext),
                value_type=ValueType.STRING,
                value=config.clsid,
            )
        )
    return entries


def registration_keys(config: Optional[RegistrationConfig] = None) -> List[str]:
    """
    Key trees removed on unregistration.

    The extension keys themselves are left alone; only the handler's
    CLSID tree and each extension's thumbnail ShellEx key go.
    """
    config = config or settings.registration
    return [_clsid_key(config)] + [_shellex_key(config, ext) for ext in config.extensions]


# =============================================================================
# Stores
# =============================================================================

class RegistryStore(Protocol):
    """
    Protocol for persistent configuration stores.

    Implemented by:
        - MemoryRegistryStore (tests, dry runs)
        - WindowsRegistryStore (HKEY_CURRENT_USER via winreg)
    """

    def set_value(self, entry: RegistryEntry) -> None:
        """Create the entry's key if needed and write its value."""
        ...

    def delete_tree(self, key_path: str) -> bool:
        """Delete a key and its subkeys. Returns False if it did not exist."""
        ...

    def notify_association_changed(self) -> None:
        """Tell the shell that file associations changed."""
        ...


def _normalize_key(key_path: str) -> str:
    return key_path.strip("\\").lower()


class MemoryRegistryStore:
    """
    Dict-backed registry store.

    Keys compare case-insensitively, as in the Windows registry.

    Attributes:
        notifications: Number of association-changed notifications sent
    """

    def __init__(self) -> None:
        self._keys: Dict[str, Dict[Optional[str], Tuple[ValueType, Union[int, str]]]] = {}
        self.notifications: int = 0

    def set_value(self, entry: RegistryEntry) -> None:
        key = _normalize_key(entry.key_path)
        self._keys.setdefault(key, {})[entry.value_name] = (entry.value_type, entry.value)

    def get_value(self, key_path: str, value_name: Optional[str] = None) -> Union[int, str, None]:
        """Return a stored value's data, or None if missing."""
        values = self._keys.get(_normalize_key(key_path), {})
        stored = values.get(value_name)
        return stored[1] if stored else None

    def has_key(self, key_path: str) -> bool:
        return _normalize_key(key_path) in self._keys

    def delete_tree(self, key_path: str) -> bool:
        root = _normalize_key(key_path)
        doomed = [k for k in self._keys if k == root or k.startswith(root + "\\")]
        for k in doomed:
            del self._keys[k]
        return bool(doomed)

    def notify_association_changed(self) -> None:
        self.notifications += 1

    def __len__(self) -> int:
        return len(self._keys)


class WindowsRegistryStore:
    """
    Registry store writing to HKEY_CURRENT_USER.

    Only usable on Windows; winreg and ctypes.windll are imported when the
    store is created.
    """

    SHCNE_ASSOCCHANGED = 0x08000000
    SHCNF_IDLIST = 0x0000

    def __init__(self) -> None:
        try:
            import winreg
        except ImportError as e:
            raise RegistrationError("The Windows registry is not available on this platform") from e
        self._winreg = winreg

    def set_value(self, entry: RegistryEntry) -> None:
        winreg = self._winreg
        reg_type = winreg.REG_SZ if entry.value_type is ValueType.STRING else winreg.REG_DWORD
        try:
            with winreg.CreateKeyEx(
                winreg.HKEY_CURRENT_USER, entry.key_path, 0, winreg.KEY_SET_VALUE
            ) as key:
                winreg.SetValueEx(key, entry.value_name, 0, reg_type, entry.value)
        except OSError as e:
            raise RegistrationError(f"Failed to write {entry.describe()}: {e}") from e

    def delete_tree(self, key_path: str) -> bool:
        try:
            self._delete_tree(self._winreg.HKEY_CURRENT_USER, key_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise RegistrationError(f"Failed to delete {key_path}: {e}") from e
        return True

    def _delete_tree(self, parent, key_path: str) -> None:
        winreg = self._winreg
        with winreg.OpenKey(parent, key_path, 0, winreg.KEY_ALL_ACCESS) as key:
            while True:
                try:
                    child = winreg.EnumKey(key, 0)
                except OSError:
                    break
                self._delete_tree(key, child)
        winreg.DeleteKey(parent, key_path)

    def notify_association_changed(self) -> None:
        import ctypes

        ctypes.windll.shell32.SHChangeNotify(
            self.SHCNE_ASSOCCHANGED, self.SHCNF_IDLIST, None, None
        )


# =============================================================================
# Apply / Remove
# =============================================================================

def register(store: RegistryStore, entries: Iterable[RegistryEntry]) -> int:
    """
    Apply entries in order, then announce the association change.

    Stops at the first failing entry; nothing is announced in that case.

    Returns:
        Number of entries written

    Raises:
        RegistrationError: If an entry cannot be written
    """
    written = 0
    for entry in entries:
        store.set_value(entry)
        written += 1
        logger.debug(f"Set {entry.describe()}")

    store.notify_association_changed()
    logger.info(f"Registered thumbnail handler ({written} values)")
    return written


def unregister(store: RegistryStore, keys: Iterable[str]) -> int:
    """
    Delete each key tree. Missing keys are not an error.

    Returns:
        Number of key trees that existed and were deleted

    Raises:
        RegistrationError: If an existing key cannot be deleted
    """
    deleted = 0
    for key_path in keys:
        if store.delete_tree(key_path):
            deleted += 1
            logger.debug(f"Deleted {key_path}")
        else:
            logger.debug(f"Already absent: {key_path}")

    logger.info(f"Unregistered thumbnail handler ({deleted} keys removed)")
    return deleted
