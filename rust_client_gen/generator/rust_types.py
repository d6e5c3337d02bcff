"""
Rust type expressions and the OpenAPI format table.

Type expressions are handled as plain strings (``Option<Vec<Thing>>``);
the helpers here take them apart and put them back together.
"""

import re
from typing import Final

# OpenAPI (type, format) to Rust type
STRING_FORMATS: Final = {
    None: "String",
    "date-time": "chrono::DateTime<chrono::Utc>",
    "partial-date-time": "chrono::NaiveDateTime",
    "date": "chrono::NaiveDate",
    "time": "chrono::NaiveTime",
    "password": "String",
    "byte": "base64::Base64Data",
    "binary": "bytes::Bytes",
    "ipv4": "std::net::Ipv4Addr",
    "ipv6": "std::net::Ipv6Addr",
    "ip": "std::net::IpAddr",
    "uri": "String",
    "uri-template": "String",
    "url": "String",
    "email": "String",
    "hostname": "String",
    "id": "String",
    "phone": "phone_number::PhoneNumber",
    "uuid": "uuid::Uuid",
}

INTEGER_FORMATS: Final = {
    None: "i64",
    "int64": "i64",
    "int32": "i32",
    "int16": "i16",
    "int8": "i8",
    "uint": "u32",
    "uint8": "u8",
    "uint16": "u16",
    "uint32": "u32",
    "uint64": "u64",
    "duration": "i64",
}

NUMBER_FORMATS: Final = {
    None: "f64",
    "double": "f64",
    "float": "f32",
    "money-usd": "f64",
}

# Modules inlined at the top of types.rs
SUPPORT_MODULES: Final = ("base64", "paginate", "phone_number", "error", "multipart")

INTEGER_TYPES: Final = frozenset({"i8", "i16", "i32", "i64", "u8", "u16", "u32", "u64"})
FLOAT_TYPES: Final = frozenset({"f32", "f64"})

# Types that implement Display, usable as path parameters and table columns
DISPLAY_PRIMITIVES: Final = frozenset(
    {
        "String",
        "bool",
        *INTEGER_TYPES,
        *FLOAT_TYPES,
        "chrono::DateTime<chrono::Utc>",
        "chrono::NaiveDateTime",
        "chrono::NaiveDate",
        "chrono::NaiveTime",
        "base64::Base64Data",
        "std::net::Ipv4Addr",
        "std::net::Ipv6Addr",
        "std::net::IpAddr",
        "phone_number::PhoneNumber",
        "uuid::Uuid",
    }
)

CRATE_TYPES_PREFIX: Final = "crate::types::"

_WRAPPER_PATTERN: Final = re.compile(r"^(Option|Vec|Box)<(.*)>$", re.DOTALL)
_MAP_PATTERN: Final = re.compile(r"^std::collections::HashMap<String,\s*(.*)>$", re.DOTALL)


def option_of(rust_type: str) -> str:
    """Wrap a type in ``Option`` unless it already is one.

    Examples:
        >>> option_of("String")
        'Option<String>'
        >>> option_of("Option<String>")
        'Option<String>'
    """
    return rust_type if is_option(rust_type) else f"Option<{rust_type}>"


def _unwrap(rust_type: str, wrapper: str) -> str | None:
    match = _WRAPPER_PATTERN.match(rust_type.strip())
    if match and match.group(1) == wrapper:
        return match.group(2).strip()
    return None


def is_option(rust_type: str) -> bool:
    return _unwrap(rust_type, "Option") is not None


def is_vec(rust_type: str) -> bool:
    return _unwrap(rust_type, "Vec") is not None


def is_box(rust_type: str) -> bool:
    return _unwrap(rust_type, "Box") is not None


def strip_option(rust_type: str) -> str:
    """Return the inner type of an ``Option``, or the type itself.

    Examples:
        >>> strip_option("Option<Vec<String>>")
        'Vec<String>'
        >>> strip_option("i64")
        'i64'
    """
    return _unwrap(rust_type, "Option") or rust_type


def vec_item(rust_type: str) -> str | None:
    """Return the element type of a ``Vec``."""
    return _unwrap(rust_type, "Vec")


def box_inner(rust_type: str) -> str | None:
    return _unwrap(rust_type, "Box")


def map_value(rust_type: str) -> str | None:
    """Return the value type of a ``HashMap<String, T>``.

    Examples:
        >>> map_value("std::collections::HashMap<String, i64>")
        'i64'
    """
    match = _MAP_PATTERN.match(rust_type.strip())
    return match.group(1).strip() if match else None


def base_type(rust_type: str) -> str:
    """Strip ``Option`` and ``Box`` wrappers.

    Examples:
        >>> base_type("Option<Box<Thing>>")
        'Thing'
    """
    current = rust_type
    while True:
        inner = _unwrap(current, "Option") or _unwrap(current, "Box")
        if inner is None:
            return current
        current = inner
