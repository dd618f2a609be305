"""
Tests for the index scanner and module name queries.
"""

import asyncio
import re

import pytest

from modehub.core.config.loader import Settings
from modehub.core.errors import ConfigurationError, ManifestError, ResolutionError
from modehub.core.models.options import QueryOptions
from modehub.core.services.index import IndexScanner, name_query


@pytest.fixture
def index(write_manifest):
    write_manifest("foo.yml", {"description": "Foo", "repo": "git://example/foo.git"})
    write_manifest("bar.yaml", {"description": "Bar"})
    write_manifest("web/foo-bar.yml", {"categories": ["web"]})
    write_manifest("web/README.md", "not a manifest")
    write_manifest(".git/config.yml", {"description": "hidden"})


# ── Scanning ─────────────────────────────────────────────────────────


class TestManifestPaths:
    def test_walk_order_skips_hidden_and_non_manifests(self, index, settings):
        assert IndexScanner(settings).manifest_paths() == [
            "bar.yaml",
            "foo.yml",
            "web/foo-bar.yml",
        ]


class TestFind:
    async def test_prefix_or_word(self, index, settings):
        modules = await IndexScanner(settings).find("foo")
        assert [m.id for m in modules] == ["foo", "web/foo-bar"]
        assert modules[0].info.description == "Foo."

    async def test_word_in_namespace(self, index, settings):
        modules = await IndexScanner(settings).find("bar")
        assert [m.id for m in modules] == ["bar", "web/foo-bar"]

    async def test_no_match_is_empty(self, index, settings):
        assert await IndexScanner(settings).find("oo") == []

    async def test_substring(self, index, settings):
        modules = await IndexScanner(settings).find("oo", QueryOptions(substr=True))
        assert [m.id for m in modules] == ["foo", "web/foo-bar"]

    async def test_regexp(self, index, settings):
        modules = await IndexScanner(settings).find("/^web//")
        assert [m.id for m in modules] == ["web/foo-bar"]

    async def test_on_module_called_per_match(self, index, settings):
        seen = []
        await IndexScanner(settings).find("foo", on_module=lambda m: seen.append(m.id))
        assert sorted(seen) == ["foo", "web/foo-bar"]

    async def test_modules_carry_settings(self, index, settings):
        (module,) = await IndexScanner(settings).find(re.compile(r"^foo\.yml$"))
        assert module.settings is settings
        assert module.prepare_config().repo_uri == "git://example/foo.git"

    async def test_bad_manifest_aborts(self, index, settings, write_manifest):
        write_manifest("web/foo-broken.yml", "description: [unclosed")
        with pytest.raises(ManifestError) as exc:
            await IndexScanner(settings).find("foo")
        assert exc.value.path.name == "foo-broken.yml"

    async def test_undecodable_manifest_names_file(self, settings):
        (settings.index_dir / "foo.yml").write_bytes(b"description: caf\xe9\n")
        with pytest.raises(ManifestError) as exc:
            await IndexScanner(settings).find("foo")
        assert exc.value.path.name == "foo.yml"
        assert "foo.yml" in str(exc.value)

    async def test_failing_listener_aborts_scan(self, index, settings):
        def broken(module):
            raise RuntimeError(f"listener failed on {module.id}")

        with pytest.raises(RuntimeError, match="listener failed"):
            await asyncio.wait_for(
                IndexScanner(settings).find("foo", on_module=broken), timeout=5
            )

    async def test_missing_index(self, tmp_path):
        settings = Settings(base_dir=tmp_path / "nowhere")
        with pytest.raises(ConfigurationError, match="modehub update"):
            await IndexScanner(settings).find("foo")

    async def test_malformed_query(self, index, settings):
        with pytest.raises(ResolutionError):
            await IndexScanner(settings).find("/foo")


# ── Name queries ─────────────────────────────────────────────────────


class TestNameQuery:
    def test_exact_names(self, index, settings):
        pattern, per_module = name_query(["foo"], settings)
        assert pattern.search("foo.yml")
        assert pattern.search("web/foo.yml")
        assert not pattern.search("web/foo-bar.yml")
        assert per_module == {"foo": {}}

    def test_revision_suffix(self, settings):
        pattern, per_module = name_query(["web/Foo-Bar@v1.0", "bar"], settings)
        assert pattern.search("web/foo-bar.yml")
        assert pattern.search("bar.yaml")
        assert per_module == {"foo-bar": {"repo_revision": "v1.0"}, "bar": {}}

    def test_case_sensitive(self, settings):
        pattern, _ = name_query(["Foo"], settings, case_sensitive=True)
        assert not pattern.search("foo.yml")

    def test_regex_characters_are_literal(self, settings):
        pattern, _ = name_query(["c++"], settings)
        assert pattern.search("c++.yml")
        assert not pattern.search("cc.yml")

    def test_missing_name(self, settings):
        with pytest.raises(ResolutionError, match="missing module name"):
            name_query([], settings)

    def test_malformed_name(self, settings):
        with pytest.raises(ResolutionError):
            name_query(["@v1"], settings)

    async def test_find_by_names(self, index, settings):
        pattern, _ = name_query(["foo", "bar"], settings)
        modules = await IndexScanner(settings).find(pattern)
        assert [m.id for m in modules] == ["bar", "foo"]
