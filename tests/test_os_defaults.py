from __future__ import annotations

import pytest

from nr_php_installer.agent_config import build_agent_config
from nr_php_installer.errors import ConfigError
from nr_php_installer.os_defaults import (
    OsDefaults,
    StaticOsDefaults,
    detect_platform_family,
    family_from_os_release,
    parse_os_release,
)

UBUNTU = """\
NAME="Ubuntu"
VERSION_ID="22.04"
ID=ubuntu
ID_LIKE=debian
# comment
"""

ROCKY = 'ID="rocky"\nID_LIKE="rhel centos fedora"\n'


def test_parse_os_release_strips_quotes_and_comments():
    info = parse_os_release(UBUNTU)
    assert info["ID"] == "ubuntu"
    assert info["VERSION_ID"] == "22.04"
    assert "# comment" not in info


@pytest.mark.parametrize(
    "text,family",
    [
        (UBUNTU, "debian"),
        ("ID=debian\n", "debian"),
        (ROCKY, "redhat"),
        ("ID=amzn\nID_LIKE=\"centos rhel fedora\"\n", "redhat"),
        ("ID=linuxmint\nID_LIKE=\"ubuntu debian\"\n", "debian"),
        ("ID=alpine\n", None),
    ],
)
def test_family_from_os_release(text, family):
    assert family_from_os_release(parse_os_release(text)) == family


def test_detect_platform_family_from_file(tmp_path):
    p = tmp_path / "os-release"
    p.write_text(ROCKY, encoding="utf-8")
    assert detect_platform_family(str(p)) == "redhat"


def test_detect_platform_family_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Cannot detect platform"):
        detect_platform_family(str(tmp_path / "nope"))


def test_detect_platform_family_unsupported(tmp_path):
    p = tmp_path / "os-release"
    p.write_text("ID=alpine\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Unsupported platform"):
        detect_platform_family(str(p))


def test_build_config_detects_platform_when_not_given(tmp_path):
    p = tmp_path / "os-release"
    p.write_text(UBUNTU, encoding="utf-8")
    cfg = build_agent_config({"license_key": "abc"}, os_release_path=str(p))
    assert cfg.platform_family == "debian"


def test_injected_provider_is_used():
    provider = StaticOsDefaults(
        table={
            "custom": OsDefaults(
                conf_dir="/srv/php/conf.d",
                package_name="newrelic-php",
                daemon_service_name="nr-daemon",
                purge_files=("/srv/php/cli/newrelic.ini",),
            )
        }
    )
    cfg = build_agent_config({"license_key": "abc", "platform_family": "custom"}, defaults_provider=provider)
    assert cfg.conf_dir == "/srv/php/conf.d"
    assert cfg.daemon_service_name == "nr-daemon"
    assert cfg.purge_files == ("/srv/php/cli/newrelic.ini",)
    assert dict(cfg.daemon_settings) == {}
