"""End-to-end tests of the generated crate."""

import json
from pathlib import Path
from typing import Any

import jsonpatch
import pytest

from conftest import minimal_document
from rust_client_gen.config import AuthMode, GeneratorOptions
from rust_client_gen.generator.client import ClientBoilerplate
from rust_client_gen.generator.template_engine import RustCodeGenerator, RustTemplateEngine


class TestGeneratedFiles:
    def test_file_set(self, generated: dict[str, str]) -> None:
        assert sorted(generated) == [
            "Cargo.toml",
            "README.md",
            "kittycad.rs.patch.json",
            "src/api_calls.rs",
            "src/lib.rs",
            "src/meta.rs",
            "src/ml.rs",
            "src/types.rs",
        ]

    def test_cargo_manifest(self, generated: dict[str, str]) -> None:
        cargo = generated["Cargo.toml"]
        assert 'name = "kittycad"' in cargo
        assert 'description = "A fully generated client."' in cargo
        assert 'version = "0.1.0"' in cargo
        assert "repository" not in cargo
        assert "[features]" in cargo

    def test_lib_declares_tag_modules(self, generated: dict[str, str]) -> None:
        lib = generated["src/lib.rs"]
        assert "mod methods;\n#[cfg(test)]\nmod tests;\npub mod types;\n" in lib
        assert "pub mod utils;" not in lib
        assert (
            "/// API calls that have been performed by users can be queried by the API.\n"
            "///\n"
            "/// FROM: <https://docs.example.com/api/api-calls>\n"
            '#[cfg(feature = "requests")]\n'
            "pub mod api_calls;\n"
        ) in lib
        assert '#[cfg(feature = "requests")]\npub mod meta;\n' in lib
        assert "pub struct Client {" in lib
        assert "pub fn api_calls(&self) -> api_calls::ApiCalls {" in lib

    def test_crate_docs(self, generated: dict[str, str]) -> None:
        lib = generated["src/lib.rs"]
        readme = generated["README.md"]
        assert lib.startswith("//! A fully generated client.")
        assert readme.startswith("# `kittycad`\n\nA fully generated client.")
        assert "API server for machines." in readme
        assert "KITTYCAD_API_TOKEN" in readme

    def test_paginated_method_and_stream(self, generated: dict[str, str]) -> None:
        api_calls = generated["src/api_calls.rs"]
        assert (
            "    pub async fn list<'a>(\n"
            "        &'a self,\n"
            "        limit: Option<u32>,\n"
            "        page_token: Option<String>,\n"
            "        sort_by: Option<crate::types::CreatedAtSortMode>,\n"
            "    ) -> Result<crate::types::ApiCallWithPriceResultsPage, crate::types::error::Error> {\n"
        ) in api_calls
        assert (
            "    pub fn list_stream<'a>(\n"
            "        &'a self,\n"
            "        limit: Option<u32>,\n"
            "        sort_by: Option<crate::types::CreatedAtSortMode>,\n"
            "    ) -> impl futures::Stream<Item = Result<crate::types::ApiCallWithPrice, crate::types::error::Error>>"
        ) in api_calls
        assert "self.list(limit.clone(), None, sort_by.clone())" in api_calls
        assert "request = new_result.next_page(request)?;" in api_calls
        assert "if let Some(p) = &sort_by {" in api_calls
        assert 'query_params.push(("page_token", p.to_string()));' in api_calls

    def test_path_interpolation(self, generated: dict[str, str]) -> None:
        api_calls = generated["src/api_calls.rs"]
        assert '"api-calls/{id}".replace("{id}", &format!("{}", id))' in api_calls
        assert "        id: uuid::Uuid,\n" in api_calls
        assert "req = req.bearer_auth(&self.client.token);" in api_calls

    def test_multipart_method(self, generated: dict[str, str]) -> None:
        ml = generated["src/ml.rs"]
        assert (
            "    pub async fn create_proprietary_to_kcl<'a>(\n"
            "        &'a self,\n"
            "        attachments: Vec<crate::types::multipart::Attachment>,\n"
            "        code_option: Option<crate::types::CodeOption>,\n"
            "    )"
        ) in ml
        assert "let mut form = reqwest::multipart::Form::new();" in ml
        assert "for attachment in attachments {" in ml
        assert "json_part" not in ml.split("pub async fn create_text_to_cad")[0]
        assert "req = req.json(body);" in ml

    def test_types_module(self, generated: dict[str, str]) -> None:
        types = generated["src/types.rs"]
        assert types.startswith("//! This module contains the generated types for the library.\n")
        assert "pub mod base64 {" in types
        assert '#[cfg(feature = "requests")]\npub mod paginate {' in types
        assert "pub enum ErrorCode {" in types
        assert "pub struct ApiCallWithPrice {" in types
        assert "pub type Labels = std::collections::HashMap<String, String>;" in types
        assert '#[serde(tag = "type", content = "data")]\npub enum ImageSource {' in types
        assert "impl crate::types::paginate::Pagination for ApiCallWithPriceResultsPage {" in types
        assert "type Item = ApiCallWithPrice;" in types
        assert "self.next_page.clone()" in types
        # types are emitted in name order
        assert types.index("pub enum ApiCallStatus") < types.index("pub struct ApiCallWithPrice {")

    def test_patch_annotates_operations(self, generated: dict[str, str], machine_api: dict[str, Any]) -> None:
        patch = json.loads(generated["kittycad.rs.patch.json"])
        annotated = jsonpatch.apply_patch(machine_api, patch)
        extension = annotated["paths"]["/api-calls"]["get"]["x-rust"]
        assert extension["libDocsLink"].endswith("#method.list")
        assert "async fn example_api_calls_list()" in extension["example"]
        assert annotated["info"]["x-rust"]["install"] == '[dependencies]\nkittycad = "0.1.0"'
        assert "x-rust" not in machine_api["info"]


class TestAuthModes:
    @pytest.fixture
    def generate(self, machine_api: dict[str, Any], template_engine: RustTemplateEngine):
        def _generate(**kwargs: Any) -> dict[str, str]:
            options = GeneratorOptions(name="ramp-api", base_url="https://api.ramp.com", **kwargs)
            files = RustCodeGenerator(template_engine).generate_client(machine_api, "out", options)
            return {path.as_posix(): content for path, content in files.items()}

        return _generate

    def test_bearer_env_variables(self, generate) -> None:
        lib = generate()["out/src/lib.rs"]
        assert 'let token = env::var("RAMP_API_TOKEN").expect("must set RAMP_API_TOKEN");' in lib

    def test_additional_env_prefix_is_tried_first(self, generate) -> None:
        lib = generate(add_env_prefix="zoo")["out/src/lib.rs"]
        assert (
            'env::var("ZOO_API_TOKEN").or_else(|_| env::var("RAMP_API_TOKEN"))'
            '.expect("must set ZOO_API_TOKEN or RAMP_API_TOKEN")'
        ) in lib

    def test_basic_auth(self, generate) -> None:
        files = generate(basic_auth=True)
        lib = files["out/src/lib.rs"]
        assert "pub fn new<U, P>(username: U, password: P) -> Self" in lib
        assert 'env::var("RAMP_USERNAME")' in lib
        assert 'env::var("RAMP_PASSWORD")' in lib
        assert "req = req.basic_auth(&self.client.username, Some(&self.client.password));" in files["out/src/ml.rs"]

    def test_oauth2(self, generate) -> None:
        files = generate(
            token_endpoint="https://api.ramp.com/developer/v1/token",
            user_consent_endpoint="https://app.ramp.com/v1/authorize",
        )
        lib = files["out/src/lib.rs"]
        assert "const REFRESH_THRESHOLD: std::time::Duration = std::time::Duration::from_secs(60);" in lib
        assert 'env::var("RAMP_CLIENT_ID")' in lib
        assert 'env::var("RAMP_REDIRECT_URI")' in lib
        assert "pub fn user_consent_url(" in lib
        assert '"https://api.ramp.com/developer/v1/token"' in lib
        assert "req = req.bearer_auth(&self.client.access_token().await?);" in files["out/src/ml.rs"]

    def test_auth_mode_precedence(self) -> None:
        options = GeneratorOptions(name="x", base_url="https://x", basic_auth=True, token_endpoint="https://x/token")
        assert options.auth_mode == AuthMode.OAUTH2

    def test_oauth2_example_client(self) -> None:
        options = GeneratorOptions(name="ramp-api", base_url="https://api.ramp.com", token_endpoint="https://t")
        client = ClientBoilerplate(options, None).example_client()
        assert "ramp_api::Client::new_from_env(" in client
        assert "`RAMP_CLIENT_ID`" in client


class TestDateTimeFormat:
    def test_utils_module_and_deserializers(
        self, machine_api: dict[str, Any], template_engine: RustTemplateEngine
    ) -> None:
        options = GeneratorOptions(name="ramp-api", base_url="https://api.ramp.com", date_time_format="%Y-%m-%dT%H:%M:%S")
        files = RustCodeGenerator(template_engine).generate_client(machine_api, "out", options)
        files = {path.as_posix(): content for path, content in files.items()}
        assert "pub mod utils;" in files["out/src/lib.rs"]
        assert 'pub const DATE_TIME_FORMAT: &str = "%Y-%m-%dT%H:%M:%S";' in files["out/src/utils.rs"]
        assert 'deserialize_with = "crate::utils::date_time_format::deserialize"' in files["out/src/types.rs"]


class TestPhoneNumberQuery:
    def test_phone_numbers_are_sent_only_when_present(
        self, options: GeneratorOptions, template_engine: RustTemplateEngine
    ) -> None:
        document = minimal_document(
            paths={
                "/contacts": {
                    "get": {
                        "operationId": "find_contacts",
                        "tags": ["contacts"],
                        "parameters": [
                            {"name": "phone", "in": "query", "schema": {"type": "string", "format": "phone"}},
                            {
                                "name": "fallback",
                                "in": "query",
                                "required": True,
                                "schema": {"type": "string", "format": "phone"},
                            },
                        ],
                        "responses": {"204": {"description": "ok"}},
                    }
                }
            }
        )
        files = RustCodeGenerator(template_engine).generate_client(document, "out", options)
        contacts = files[Path("out") / "src" / "contacts.rs"]
        assert (
            "        if let Some(p) = phone {\n"
            "            if p.is_some() {\n"
            '                query_params.push(("phone", format!("{}", p)));\n'
            "            }\n"
            "        }\n"
        ) in contacts
        assert (
            "        if fallback.is_some() {\n"
            '            query_params.push(("fallback", format!("{}", fallback)));\n'
            "        }\n"
        ) in contacts
