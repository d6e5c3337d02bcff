"""
Client boilerplate for the emitted crate.

Renders the top-level ``Client`` struct for the configured authentication
mode, the crate documentation shared by ``lib.rs`` and ``README.md``, and
the statement each generated function uses to authenticate a request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from rust_client_gen.config import AuthMode, GeneratorOptions
from rust_client_gen.generator.naming import proper_name

if TYPE_CHECKING:
    from rust_client_gen.generator.template_engine import RustTemplateEngine
    from rust_client_gen.parser.document import TagInfo

AUTH_STATEMENTS: Final = {
    AuthMode.BEARER: "req = req.bearer_auth(&self.client.token);",
    AuthMode.BASIC: "req = req.basic_auth(&self.client.username, Some(&self.client.password));",
    AuthMode.OAUTH2: "req = req.bearer_auth(&self.client.access_token().await?);",
}

# Environment variable suffixes read by `Client::new_from_env`
ENV_VARIABLE_SUFFIXES: Final = {
    AuthMode.BEARER: ("API_TOKEN",),
    AuthMode.BASIC: ("USERNAME", "PASSWORD"),
    AuthMode.OAUTH2: ("CLIENT_ID", "CLIENT_SECRET", "REDIRECT_URI"),
}

CLIENT_TEMPLATES: Final = {
    AuthMode.BEARER: "client/bearer.rs.j2",
    AuthMode.BASIC: "client/basic.rs.j2",
    AuthMode.OAUTH2: "client/oauth2.rs.j2",
}

# Seconds subtracted from `expires_in` before an OAuth2 token counts as expired
MIN_REFRESH_THRESHOLD_SECONDS: Final = 60


class ClientBoilerplate:
    """Client struct, crate docs and auth snippets for one auth mode."""

    def __init__(self, options: GeneratorOptions, template_engine: RustTemplateEngine) -> None:
        self.options = options
        self.template_engine = template_engine

    @property
    def auth_mode(self) -> AuthMode:
        return self.options.auth_mode

    @property
    def auth_statement(self) -> str:
        """Statement that authenticates the request builder ``req`` inside a tag method."""
        return AUTH_STATEMENTS[self.auth_mode]

    def env_variables(self) -> dict[str, list[str]]:
        """Environment variables per credential, in lookup order.

        Examples:
            >>> options = GeneratorOptions(name="kittycad", base_url="https://api.kittycad.io", add_env_prefix="zoo")
            >>> ClientBoilerplate(options, None).env_variables()
            {'API_TOKEN': ['ZOO_API_TOKEN', 'KITTYCAD_API_TOKEN']}
        """
        return {
            suffix: [f"{prefix}_{suffix}" for prefix in self.options.env_prefixes]
            for suffix in ENV_VARIABLE_SUFFIXES[self.auth_mode]
        }

    def example_client(self) -> str:
        """Client construction snippet published in the annotated document."""
        crate = self.options.code_package_name
        variables = ", ".join(f"`{name}`" for names in self.env_variables().values() for name in names)
        match self.auth_mode:
            case AuthMode.BASIC:
                new = f'let client = {crate}::Client::new("$USERNAME", "$PASSWORD");'
                intro = "// Authenticate via a username and password."
            case AuthMode.OAUTH2:
                new = (
                    f"let client = {crate}::Client::new(\n"
                    '    "$CLIENT_ID",\n    "$CLIENT_SECRET",\n    "$REDIRECT_URI",\n    "$TOKEN",\n    "$REFRESH_TOKEN",\n);'
                )
                intro = "// Authenticate via OAuth2 credentials."
            case _:
                new = f'let client = {crate}::Client::new("$TOKEN");'
                intro = "// Authenticate via an API token."
        from_env = (
            f'let client = {crate}::Client::new_from_env(String::from("$TOKEN"), String::from("$REFRESH_TOKEN"));'
            if self.auth_mode == AuthMode.OAUTH2
            else f"let client = {crate}::Client::new_from_env();"
        )
        return (
            f"{intro}\n{new}\n\n// - OR -\n\n"
            f"// Authenticate with your credentials parsed from the environment variables:\n"
            f"// {variables}.\n{from_env}"
        )

    def install_snippet(self) -> str:
        return f'[dependencies]\n{self.options.package_name} = "{self.options.version}"'

    def context(self, info: dict[str, Any], tags: list[TagInfo]) -> dict[str, Any]:
        """Template context shared by the client, lib.rs and README templates."""
        return {
            "options": self.options,
            "info": info,
            "auth_mode": self.auth_mode.value,
            "env_variables": self.env_variables(),
            "refresh_threshold_seconds": MIN_REFRESH_THRESHOLD_SECONDS,
            "tags": [{"tag": tag, "struct_name": proper_name(tag.module)} for tag in tags],
        }

    def render_client(self, info: dict[str, Any], tags: list[TagInfo]) -> str:
        """Render the ``Client`` struct and its per-tag accessors."""
        return self.template_engine.render_template(CLIENT_TEMPLATES[self.auth_mode], self.context(info, tags))

    def render_crate_docs(self, info: dict[str, Any], tags: list[TagInfo]) -> str:
        """Render the markdown crate documentation."""
        return self.template_engine.render_template("base/crate_docs.md.j2", self.context(info, tags))
