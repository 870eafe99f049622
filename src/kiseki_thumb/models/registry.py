"""
Registry Entry Models
=====================

Pydantic models describing the file-association table written by the
registration utility.

Each entry names a key path (relative to the current user's hive), an
optional value name (None means the key's default value), a value type,
and the data to store.

Example:
    from kiseki_thumb.models.registry import RegistryEntry, ValueType

    entry = RegistryEntry(
        key_path=r"Software\\Classes\\.rbxl",
        value_name="Treatment",
        value_type=ValueType.INTEGER,
        value=0,
    )
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, model_validator


DWORD_MAX = 0xFFFFFFFF


class ValueType(str, Enum):
    """
    Supported registry value types.

    Attributes:
        STRING: REG_SZ, a NUL-terminated UTF-16 string
        INTEGER: REG_DWORD, a 32-bit unsigned integer
    """

    STRING = "string"
    INTEGER = "integer"


class RegistryEntry(BaseModel):
    """
    One value to create under a registry key.

    Attributes:
        key_path: Backslash separated key path, created if missing
        value_name: Value name, or None for the key's default value
        value_type: STRING or INTEGER
        value: Data matching value_type
    """

    key_path: str = Field(..., min_length=1, description="Key path under HKCU")
    value_name: Optional[str] = Field(
        default=None,
        description="Value name (None = default value)",
    )
    value_type: ValueType = Field(..., description="Registry value type")
    value: Union[int, str] = Field(..., description="Value data")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_value_matches_type(self) -> "RegistryEntry":
        if self.value_type is ValueType.STRING:
            if not isinstance(self.value, str):
                raise ValueError("STRING entries need str data")
        else:
            if isinstance(self.value, bool) or not isinstance(self.value, int):
                raise ValueError("INTEGER entries need int data")
            if not 0 <= self.value <= DWORD_MAX:
                raise ValueError(f"INTEGER data out of DWORD range: {self.value}")
        return self

    def describe(self) -> str:
        """One-line human readable form, used by dry runs."""
        name = self.value_name or "(Default)"
        return f"{self.key_path} [{name}] {self.value_type.value} = {self.value!r}"
