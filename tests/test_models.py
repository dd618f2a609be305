"""
Tests for the Module entity — identity, manifest merging and
configuration resolution.
"""

from pathlib import Path

import pytest

from modehub.core.errors import ManifestError
from modehub.core.events import INFO
from modehub.core.models.module import Module, ModuleInfo, make_install_id
from modehub.core.models.options import InstallOptions

# ── Identity ─────────────────────────────────────────────────────────


class TestIdentity:
    def test_short_id(self, make_module):
        assert make_module("web/text/markdown").short_id == "markdown"
        assert make_module("markdown").short_id == "markdown"

    def test_default_branch(self, make_module):
        module = make_module()
        assert module.repo_branch == "master"
        assert not module.uses_explicit_branch
        assert module.install_id == "web/foo/master"
        assert module.active_id == "foo"

    def test_manifest_branch_is_not_explicit(self, make_module):
        module = make_module(repo_branch="stable")
        module.prepare_config()
        assert module.repo_branch == "stable"
        assert not module.uses_explicit_branch
        assert module.active_id == "foo"

    def test_caller_branch_is_explicit(self, make_module):
        module = make_module()
        module.prepare_config(InstallOptions(repo_branch="devel"))
        assert module.uses_explicit_branch
        assert module.install_id == "web/foo/devel"
        assert module.active_id == "foo@devel"

    def test_revision_in_ids(self, make_module):
        module = make_module()
        module.prepare_config(InstallOptions(repo_revision="release/1.0"))
        assert module.install_id == "web/foo/master-release-1.0"
        assert module.active_id == "foo@release-1.0"

    def test_ids_are_stable(self, make_module):
        module = make_module()
        module.prepare_config(InstallOptions(repo_branch="devel"))
        first = (module.install_id, module.active_id, module.install_dir)
        module.prepare_config()
        module.prepare_config()
        assert (module.install_id, module.active_id, module.install_dir) == first

    def test_paths(self, make_module, settings):
        module = make_module()
        assert module.install_dir == settings.installed_dir / "web/foo/master"
        assert module.active_path == settings.active_dir / "foo"

    def test_str(self, make_module):
        assert str(make_module()) == "foo@master"

    def test_make_install_id(self):
        assert make_install_id("a/b", "master") == "a/b/master"
        assert make_install_id("a/b", "master", "v1/rc") == "a/b/master-v1-rc"


# ── Manifest ─────────────────────────────────────────────────────────


class TestManifest:
    def test_description_normalized(self):
        assert ModuleInfo(description="  -- A parser. ").description == "A parser."
        assert ModuleInfo(description="...").description is None

    def test_version_as_text(self):
        assert ModuleInfo(version=0.2).version == "0.2"

    def test_repo_branch_alias(self):
        assert ModuleInfo.model_validate({"repoBranch": "stable"}).repo_branch == "stable"

    def test_github_shorthand(self, make_module):
        module = make_module(github="someone/markdown-js")
        assert module.info.repo == "git://github.com/someone/markdown-js.git"
        assert module.info.url == "https://github.com/someone/markdown-js"

    def test_fragments_accumulate(self, make_module):
        module = make_module(categories=["text"], description="First")
        module.apply_index_content({"categories": "parsers", "description": "Second"})
        assert module.categories == ["text", "parsers"]
        assert module.info.description == "Second."

    def test_multi_document_text(self, settings):
        module = Module(id="foo", settings=settings)
        module.apply_index_content("depends: [a]\n---\ndepends: [b]\nversion: 1.2\n")
        assert module.depends == ["a", "b"]
        assert module.info.version == "1.2"

    def test_unknown_keys_kept(self, make_module):
        module = make_module(license="MIT")
        assert module.info.model_extra == {"license": "MIT"}

    def test_info_event(self, settings):
        seen = []
        module = Module(id="foo", settings=settings)
        module.events.on(INFO, seen.append)
        module.apply_index_content({"description": "x"})
        assert seen == [module]

    def test_invalid_fragment_names_file(self, settings):
        module = Module(id="foo", settings=settings)
        with pytest.raises(ManifestError) as exc:
            module.apply_index_content({"categories": [], "depends": [], "version": []}, "foo.yml")
        assert exc.value.path == Path("foo.yml")
        assert "foo.yml" in str(exc.value)

    def test_describe(self, make_module):
        module = make_module(description="Parser", version="1.0", categories=["text"], url="https://x")
        assert module.describe() == "web/foo (1.0) — Parser."
        detailed = module.describe(detailed=True)
        assert "Categories:  text" in detailed
        assert "Website:     https://x" in detailed
        assert "Description: Parser." in detailed


# ── Configuration ────────────────────────────────────────────────────


class TestPrepareConfig:
    def test_resolves_from_manifest(self, make_module, settings):
        module = make_module(repo="git://example/foo.git", product="lib")
        config = module.prepare_config()
        assert config.is_setup
        assert config.repo_uri == "git://example/foo.git"
        assert config.repo_branch == "master"
        assert config.install_dir == settings.installed_dir / "web/foo/master"
        assert config.product == config.install_dir / "lib"

    def test_no_op_once_setup(self, make_module):
        module = make_module(repo="git://example/foo.git")
        config = module.prepare_config()
        assert module.prepare_config() is config

    def test_override_wins(self, make_module):
        module = make_module(repo="git://example/foo.git", repo_branch="stable")
        module.prepare_config()
        config = module.prepare_config(InstallOptions(repo_uri="git://mirror/foo.git"))
        assert config.repo_uri == "git://mirror/foo.git"
        assert config.repo_branch == "stable"

    def test_previous_value_beats_manifest(self, make_module):
        module = make_module(repo_branch="stable")
        module.prepare_config(InstallOptions(repo_branch="devel"))
        config = module.prepare_config(InstallOptions(repo_uri="git://other"))
        assert config.repo_branch == "devel"

    def test_branch_override_moves_install_dir(self, make_module, settings):
        module = make_module()
        module.prepare_config()
        config = module.prepare_config(InstallOptions(repo_branch="devel"))
        assert config.install_dir == settings.installed_dir / "web/foo/devel"

    def test_install_dir_override(self, make_module, tmp_path):
        module = make_module()
        config = module.prepare_config(InstallOptions(install_dir=tmp_path / "here"))
        assert config.install_dir == tmp_path / "here"
        assert module.install_dir == tmp_path / "here"

    def test_config_is_replaced_not_mutated(self, make_module):
        module = make_module()
        before = module.prepare_config()
        after = module.prepare_config(InstallOptions(repo_branch="devel"))
        assert before is not after
        assert before.repo_branch == "master"

    def test_missing_repo_is_allowed(self, make_module):
        assert make_module().prepare_config().repo_uri is None
