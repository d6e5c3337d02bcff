"""
Generator options for Rust client generation.

The options mirror the command line flags; derived names (crate package
name, module name, environment variable prefix, authentication mode) are
computed once in ``__post_init__``.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from rust_client_gen.utils.string_case import constcase, snakecase, spinalcase

DEFAULT_REQUEST_TIMEOUT_SECONDS: Final = 60
DEFAULT_VERSION: Final = "0.1.0"


class AuthMode(str, Enum):
    """Authentication scheme of the emitted client."""

    BEARER = "bearer"
    BASIC = "basic"
    OAUTH2 = "oauth2"


def env_variable_prefix(name: str) -> str:
    """Return the environment variable prefix for a crate name.

    Examples:
        >>> env_variable_prefix("kittycad")
        'KITTYCAD'
        >>> env_variable_prefix("ramp-api")
        'RAMP'
    """
    return constcase(name).removesuffix("_API")


@dataclass
class GeneratorOptions:
    """Options controlling a single generator run."""

    name: str
    base_url: str
    version: str = DEFAULT_VERSION
    description: str = ""
    spec_url: str | None = None
    repo_name: str | None = None
    token_endpoint: str | None = None
    user_consent_endpoint: str | None = None
    basic_auth: bool = False
    add_env_prefix: str | None = None
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    date_time_format: str | None = None
    tag_display_names: dict[str, str] = field(default_factory=dict)

    # Derived names
    package_name: str = field(init=False)
    code_package_name: str = field(init=False)
    env_prefix: str = field(init=False)
    extra_env_prefix: str | None = field(init=False)
    auth_mode: AuthMode = field(init=False)

    def __post_init__(self) -> None:
        self.package_name = spinalcase(self.name)
        self.code_package_name = snakecase(self.name)
        self.env_prefix = env_variable_prefix(self.name)
        self.extra_env_prefix = env_variable_prefix(self.add_env_prefix) if self.add_env_prefix else None
        if self.token_endpoint:
            self.auth_mode = AuthMode.OAUTH2
        elif self.basic_auth:
            self.auth_mode = AuthMode.BASIC
        else:
            self.auth_mode = AuthMode.BEARER

    @property
    def env_prefixes(self) -> list[str]:
        """Environment variable prefixes in lookup order."""
        if self.extra_env_prefix and self.extra_env_prefix != self.env_prefix:
            return [self.extra_env_prefix, self.env_prefix]
        return [self.env_prefix]

    @classmethod
    def from_namespace(cls, args: argparse.Namespace, info: dict | None = None) -> GeneratorOptions:
        """Build options from parsed command line arguments.

        Args:
            args: Namespace produced by the CLI parser.
            info: The document's ``info`` object, used for defaults.

        Returns:
            The generator options.
        """
        info = info or {}
        description = args.description or info.get("title") or f"A client for the {args.name} API."
        return cls(
            name=args.name,
            base_url=args.base_url,
            version=args.target_version,
            description=description,
            spec_url=args.spec_url,
            repo_name=args.repo_name,
            token_endpoint=args.token_endpoint,
            user_consent_endpoint=args.user_consent_endpoint,
            basic_auth=args.basic_auth,
            add_env_prefix=args.add_env_prefix,
            request_timeout_seconds=args.request_timeout_seconds,
            date_time_format=args.date_time_format,
            tag_display_names=dict(args.tag_display_names or []),
        )

