"""Tests for profile configuration and session construction."""

import os
import re
import stat
from pathlib import Path

import pytest

from neosync.config import Config, format_profile, parse_profile
from neosync.exceptions import NeoConfigError
from neosync.sync.session import SyncSession


class TestParseProfile:
    """Tests for the key=value profile format."""

    def test_basic(self):
        values = parse_profile(
            "# my site\n"
            "site_directory=~/site\n"
            "\n"
            "api_key = abc123 \n"
            "n_concurrent_tasks=8\n"
        )

        assert values == {
            "site_directory": "~/site",
            "api_key": "abc123",
            "n_concurrent_tasks": "8",
        }

    def test_quoted_value_and_equals_in_value(self):
        values = parse_profile("ignore_regex='^a=b$'\n")
        assert values["ignore_regex"] == "^a=b$"

    def test_malformed_line(self):
        with pytest.raises(NeoConfigError, match="key=value"):
            parse_profile("site_directory\n", source="p.conf")

    def test_unknown_key(self):
        with pytest.raises(NeoConfigError, match="unknown setting 'colour'"):
            parse_profile("colour=blue\n")

    def test_format_round_trip(self):
        values = {"site_directory": "/srv/site", "api_key": "k", "ignore_regex": ""}

        text = format_profile(values)

        assert "ignore_regex" not in text
        assert parse_profile(text) == {"site_directory": "/srv/site", "api_key": "k"}


class TestConfig:
    """Test profile file handling."""

    @pytest.fixture
    def cfg(self, tmp_path):
        return Config(config_dir=tmp_path)

    def test_save_and_load(self, cfg):
        path = cfg.save_profile("blog", {"site_directory": "/srv/blog", "api_key": "k"})

        assert path == cfg.profiles_dir / "blog.conf"
        assert cfg.load_profile("blog") == {
            "site_directory": "/srv/blog",
            "api_key": "k",
        }

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_saved_profile_is_private(self, cfg):
        path = cfg.save_profile("default", {"api_key": "secret"})
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_missing_profile(self, cfg):
        with pytest.raises(NeoConfigError, match="neosync init"):
            cfg.load_profile("nope")

    def test_invalid_profile_name(self, cfg):
        with pytest.raises(NeoConfigError, match="Invalid profile name"):
            cfg.get_profile_path("../escape")

    def test_list_profiles(self, cfg):
        assert cfg.list_profiles() == []
        cfg.save_profile("zeta", {"api_key": "k"})
        cfg.save_profile("alpha", {"api_key": "k"})
        (cfg.profiles_dir / "notes.txt").write_text("x")

        assert cfg.list_profiles() == ["alpha", "zeta"]

    def test_config_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NEOSYNC_CONFIG_DIR", str(tmp_path / "custom"))
        assert Config().config_dir == tmp_path / "custom"

    def test_config_dir_from_xdg(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NEOSYNC_CONFIG_DIR", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert Config().config_dir == tmp_path / "neosync"


class TestSyncSession:
    """Test SyncSession construction from profile values."""

    def test_from_profile(self, tmp_path):
        session = SyncSession.from_profile(
            {
                "site_directory": str(tmp_path),
                "api_key": "k",
                "ignore_regex": r"\.psd$",
                "n_concurrent_tasks": "6",
            },
            profile="blog",
            use_git=False,
        )

        assert session.site_directory == tmp_path
        assert session.api_key == "k"
        assert session.ignore_regex.search("art.psd")
        assert session.n_concurrent_tasks == 6
        assert session.use_git is False
        assert session.profile == "blog"
        assert session.api_url == "https://neocities.org/api"

    def test_defaults(self, tmp_path):
        session = SyncSession.from_profile(
            {"site_directory": str(tmp_path), "api_key": "k"}
        )

        assert session.n_concurrent_tasks == 4
        assert session.ignore_regex is None
        assert session.use_git is True

    def test_expands_user(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        session = SyncSession.from_profile({"site_directory": "~/site", "api_key": "k"})
        assert session.site_directory == tmp_path / "site"

    def test_api_key_override(self, tmp_path):
        session = SyncSession.from_profile(
            {"site_directory": str(tmp_path), "api_key": "profile"}, api_key="cli"
        )
        assert session.api_key == "cli"

    def test_custom_host(self, tmp_path):
        session = SyncSession.from_profile(
            {"site_directory": str(tmp_path), "api_key": "k", "host": "example.org"}
        )
        assert session.host == "example.org"
        assert session.api_url == "https://example.org/api"

    @pytest.mark.parametrize(
        "values,match",
        [
            ({"api_key": "k"}, "site_directory"),
            ({"site_directory": "/s"}, "api_key"),
            ({"site_directory": "/s", "api_key": "k", "n_concurrent_tasks": "x"}, "integer"),
            ({"site_directory": "/s", "api_key": "k", "n_concurrent_tasks": "0"}, "positive"),
            ({"site_directory": "/s", "api_key": "k", "ignore_regex": "("}, "ignore_regex"),
        ],
    )
    def test_invalid_values(self, values, match):
        with pytest.raises(NeoConfigError, match=match):
            SyncSession.from_profile(values)

    def test_session_is_read_only(self, tmp_path):
        session = SyncSession(site_directory=tmp_path, api_key="k")
        with pytest.raises(AttributeError):
            session.api_key = "other"  # type: ignore[misc]

    def test_string_fields_are_converted(self, tmp_path):
        session = SyncSession(
            site_directory=str(tmp_path), api_key="k", ignore_regex=r"^x"
        )
        assert isinstance(session.site_directory, Path)
        assert isinstance(session.ignore_regex, re.Pattern)

    def test_validate_site_directory(self, tmp_path):
        SyncSession(site_directory=tmp_path, api_key="k").validate_site_directory()

        with pytest.raises(NeoConfigError, match="does not exist"):
            SyncSession(
                site_directory=tmp_path / "missing", api_key="k"
            ).validate_site_directory()

        f = tmp_path / "file.txt"
        f.write_text("x")
        with pytest.raises(NeoConfigError, match="not a directory"):
            SyncSession(site_directory=f, api_key="k").validate_site_directory()
