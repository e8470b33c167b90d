from __future__ import annotations

import json

import pytest

from nr_php_installer.assertions import ExecAssertion, FileAssertion, PackageAssertion, ServiceAssertion
from nr_php_installer.errors import ConfigError
from nr_php_installer.resolver import resolve

from .conftest import LICENSE


def _files(plan, ensure=None):
    return [a for a in plan.of_kind("file") if ensure is None or a.ensure == ensure]


def test_agent_mode_example(make_config):
    cfg = make_config(license_key="abc", startup_mode="agent", purge_files=["/a", "/b"])
    plan = resolve(cfg)

    absent = [a.path for a in _files(plan, "absent")]
    assert absent == ["/etc/newrelic/newrelic.cfg", "/a", "/b"]

    (svc,) = plan.of_kind("service")
    assert isinstance(svc, ServiceAssertion)
    assert (svc.ensure, svc.enable) == ("stopped", False)
    assert svc.hasrestart and svc.hasstatus

    daemon_cfg = plan.get("file:/etc/newrelic/newrelic.cfg")
    assert daemon_cfg.ensure == "absent"
    assert daemon_cfg.content is None


def test_external_mode(make_config):
    cfg = make_config(startup_mode="external", daemon_settings={"loglevel": "debug"})
    plan = resolve(cfg)

    daemon_cfg = plan.get("file:/etc/newrelic/newrelic.cfg")
    assert isinstance(daemon_cfg, FileAssertion)
    assert daemon_cfg.ensure == "file"
    assert "loglevel=debug" in (daemon_cfg.content or "")
    assert daemon_cfg.notifies == ("service:newrelic-daemon",)

    svc = plan.get("service:newrelic-daemon")
    assert (svc.ensure, svc.enable) == ("running", True)
    assert plan.notifiers_of(svc.ref) == [daemon_cfg.ref]


@pytest.mark.parametrize("mode,expected", [("agent", ("absent", "stopped", False)), ("external", ("file", "running", True))])
def test_mode_table(make_config, mode, expected):
    plan = resolve(make_config(startup_mode=mode))
    cfg_file = plan.get("file:/etc/newrelic/newrelic.cfg")
    (svc,) = plan.of_kind("service")
    assert (cfg_file.ensure, svc.ensure, svc.enable) == expected


def test_invalid_mode_fails_before_resolution(make_config):
    with pytest.raises(ConfigError):
        resolve(make_config(startup_mode="both"))


@pytest.mark.parametrize("purge", [[], ["/x"], [f"/tmp/p{i}" for i in range(25)]])
def test_purge_assertions_one_per_path(make_config, purge):
    plan = resolve(make_config(purge_files=purge))
    purged = [a.path for a in _files(plan, "absent") if a.path != "/etc/newrelic/newrelic.cfg"]
    assert purged == purge


def test_exactly_one_install_exec_requiring_all_packages(make_config):
    plan = resolve(make_config(extra_packages=["php5-cli", "php5-curl"], package_ensure="9.21.0.311"))

    execs = plan.of_kind("exec")
    assert len(execs) == 1
    (install,) = execs
    assert isinstance(install, ExecAssertion)
    assert install.command == ("newrelic-install", "install")
    assert install.environment == {"NR_INSTALL_SILENT": "1", "NR_INSTALL_KEY": LICENSE}
    assert set(install.requires) == {"package:php5-cli", "package:php5-curl", "package:newrelic-php5"}

    pkgs = {a.name: a.ensure for a in plan.of_kind("package") if isinstance(a, PackageAssertion)}
    assert pkgs == {"php5-cli": "installed", "php5-curl": "installed", "newrelic-php5": "9.21.0.311"}


def test_install_precedes_files_and_service(make_config):
    for mode in ("agent", "external"):
        plan = resolve(make_config(startup_mode=mode, purge_files=["/a"]))
        order = plan.topological_order()
        i = order.index("exec:newrelic-install")
        for a in plan.assertions:
            if a.kind in {"file", "service"}:
                assert order.index(a.ref) > i, a.ref
            if a.kind == "package":
                assert order.index(a.ref) < i, a.ref
        assert "exec:newrelic-install" in plan.dependents("package:newrelic-php5")


def test_ini_file_rendered_from_merged_settings(make_config):
    cfg = make_config(extra_ini_settings={"appname": '"default"', "loglevel": '"info"'}, ini_settings={"appname": '"shop"'})
    ini = resolve(cfg).get("file:/etc/php5/mods-available/newrelic.ini")
    assert ini.ensure == "file"
    assert 'newrelic.appname = "shop"' in ini.content
    assert 'newrelic.loglevel = "info"' in ini.content
    assert f'newrelic.license = "{LICENSE}"' in ini.content
    assert ini.requires == ("exec:newrelic-install",)


def test_install_probe_targets_ini(make_config):
    (install,) = resolve(make_config(conf_dir="/etc/php.d")).of_kind("exec")
    assert install.probe is not None
    assert install.probe.ini_path == "/etc/php.d/newrelic.ini"


def test_manage_repo_gates_packages(make_config):
    plan = resolve(make_config(manage_repo=True))
    assert plan.refs[0] == "repository:newrelic"
    for p in plan.of_kind("package"):
        assert p.requires == ("repository:newrelic",)

    assert "repository:newrelic" not in resolve(make_config()).refs


def test_resolve_is_deterministic(make_config):
    params = dict(startup_mode="external", ini_settings={"b": "2", "a": "1"}, purge_files=["/z", "/y"])
    first = resolve(make_config(**params))
    second = resolve(make_config(**params))
    assert first == second
    assert first.to_dict() == second.to_dict()
    assert first.topological_order() == second.topological_order()


def test_serialized_plan_hides_license(make_config):
    data = json.dumps(resolve(make_config(startup_mode="external")).to_dict())
    assert LICENSE not in data
    assert '"NR_INSTALL_KEY": "***"' in data
