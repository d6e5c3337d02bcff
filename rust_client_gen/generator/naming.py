"""
Naming rules for generated Rust items.

Type names are PascalCase with numbers spelled out, field and function
names are snake_case with Rust keywords escaped by a trailing underscore.
"""

import re
from typing import Final

from rust_client_gen.utils.string_case import escape_rust_keyword, pascalcase, snakecase

_ONES: Final = (
    "zero",
    "one",
    "two",
    "three",
    "four",
    "five",
    "six",
    "seven",
    "eight",
    "nine",
    "ten",
    "eleven",
    "twelve",
    "thirteen",
    "fourteen",
    "fifteen",
    "sixteen",
    "seventeen",
    "eighteen",
    "nineteen",
)
_TENS: Final = ("", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety")
_SCALES: Final = ((10**12, "trillion"), (10**9, "billion"), (10**6, "million"), (1000, "thousand"))

_SYMBOL_NAMES: Final = {
    "+": "Plus",
    "-": "Dash",
    "*": "Star",
    "/": "Slash",
    "\\": "Backslash",
    "=": "Equals",
    ".": "Dot",
    ",": "Comma",
    ":": "Colon",
    ";": "Semicolon",
    "<": "LessThan",
    ">": "GreaterThan",
    "@": "At",
    "#": "Hash",
    "$": "Dollar",
    "%": "Percent",
    "&": "And",
    "|": "Pipe",
    "!": "Bang",
    "?": "Question",
    "~": "Tilde",
    "^": "Caret",
    "_": "Underscore",
    " ": "Space",
}

_FIXED_PROPERTY_NAMES: Final = {
    "+1": "plus_one",
    "-1": "minus_one",
    "$ref": "ref_",
    "$type": "type_",
    "_links": "underscore_links",
}

_LEADING_NUMBER_PATTERN: Final = re.compile(r"^(\d+)(.*)$", re.DOTALL)

# Names a generated type may not take because they shadow the Rust prelude
RESERVED_TYPE_NAMES: Final = frozenset(
    {"Box", "Option", "Some", "None", "Result", "Ok", "Err", "String", "Vec", "Self"}
)


def cardinal(number: int) -> str:
    """Spell out an integer in English words.

    Examples:
        >>> cardinal(100)
        'one hundred'
        >>> cardinal(2)
        'two'
        >>> cardinal(-21)
        'minus twenty-one'
        >>> cardinal(1234)
        'one thousand two hundred thirty-four'
    """
    if number < 0:
        return f"minus {cardinal(-number)}"
    if number < 20:
        return _ONES[number]
    if number < 100:
        tens, ones = divmod(number, 10)
        return _TENS[tens] if ones == 0 else f"{_TENS[tens]}-{_ONES[ones]}"
    if number < 1000:
        hundreds, rest = divmod(number, 100)
        words = f"{_ONES[hundreds]} hundred"
        return words if rest == 0 else f"{words} {cardinal(rest)}"
    for scale, word in _SCALES:
        if number >= scale:
            head, rest = divmod(number, scale)
            words = f"{cardinal(head)} {word}"
            return words if rest == 0 else f"{words} {cardinal(rest)}"
    return str(number)


def proper_name(name: str) -> str:
    """Turn an arbitrary string into a Rust type or variant name.

    Examples:
        >>> proper_name("100")
        'OneHundred'
        >>> proper_name("2FaDisabled")
        'TwoFaDisabled'
        >>> proper_name("In Progress")
        'InProgress'
        >>> proper_name("")
        'Empty'
        >>> proper_name("-")
        'Dash'
        >>> proper_name("55+")
        'FiftyFivePlus'
    """
    name = name.strip()
    if not name:
        return "Empty"

    match = _LEADING_NUMBER_PATTERN.match(name)
    if match:
        digits, rest = match.groups()
        name = f"{cardinal(int(digits))} {rest}"
        if rest and not re.search(r"[A-Za-z0-9]", rest):
            name = f"{cardinal(int(digits))} {_symbol_words(rest)}"

    result = pascalcase(name)
    if not result:
        result = pascalcase(_symbol_words(name)) or "Unnamed"
    return result


def _symbol_words(text: str) -> str:
    return " ".join(_SYMBOL_NAMES.get(char, f"U{ord(char):04X}") for char in text)


def type_name(candidate: str) -> str:
    """Return the Rust type name for a candidate, avoiding prelude names.

    Examples:
        >>> type_name("things_page")
        'ThingsPage'
        >>> type_name("result")
        'ResultType'
    """
    name = proper_name(candidate)
    return f"{name}Type" if name in RESERVED_TYPE_NAMES else name


def clean_property_name(name: str) -> str:
    """Turn a JSON property or parameter name into a Rust field identifier.

    Examples:
        >>> clean_property_name("type")
        'type_'
        >>> clean_property_name("+1")
        'plus_one'
        >>> clean_property_name("$ref")
        'ref_'
        >>> clean_property_name("@foo")
        'foo'
        >>> clean_property_name("createdAt")
        'created_at'
        >>> clean_property_name("3d")
        'three_d'
    """
    if name in _FIXED_PROPERTY_NAMES:
        return _FIXED_PROPERTY_NAMES[name]

    stripped = name.lstrip("@_$")
    match = _LEADING_NUMBER_PATTERN.match(stripped)
    if match:
        digits, rest = match.groups()
        stripped = f"{cardinal(int(digits))} {rest}"

    ident = snakecase(stripped)
    if not ident:
        ident = snakecase(_symbol_words(name)) or "empty"
    return escape_rust_keyword(ident)


def clean_tag_name(tag: str) -> str:
    """Turn an OpenAPI tag into a module name.

    Examples:
        >>> clean_tag_name("API Calls")
        'api_calls'
        >>> clean_tag_name("oauth-2")
        'oauth2'
    """
    return escape_rust_keyword(snakecase(tag).replace("oauth_2", "oauth2"))


def remove_stutters(name: str, word: str) -> str:
    """Remove a word from the start, end or middle of a snake_case name.

    Examples:
        >>> remove_stutters("get_things", "things")
        'get'
        >>> remove_stutters("thing_from_zoo", "thing")
        'from_zoo'
        >>> remove_stutters("list_api_tokens_for_user", "api_tokens")
        'list_for_user'
    """
    if not word:
        return name
    prefix, suffix, middle = f"{word}_", f"_{word}", f"_{word}_"
    if name.startswith(prefix):
        name = name[len(prefix) :]
    if name.endswith(suffix):
        name = name[: -len(suffix)]
    return name.replace(middle, "_")


def singular(word: str) -> str:
    return word[:-1] if word.endswith("s") and not word.endswith("ss") else word


def operation_fn_name(operation_id: str, tag: str) -> str:
    """Return the Rust method name for an operation within its tag module.

    Examples:
        >>> operation_fn_name("getThings", "things")
        'get'
        >>> operation_fn_name("getThingsFromZoo", "things")
        'get_from_zoo'
        >>> operation_fn_name("ThingFromZoo", "things")
        'from_zoo'
        >>> operation_fn_name("meta/info", "things")
        'meta_info'
    """
    name = snakecase(operation_id)
    tag = clean_tag_name(tag).rstrip("_")
    stripped = remove_stutters(remove_stutters(name, tag), singular(tag))
    return escape_rust_keyword(stripped or name)
