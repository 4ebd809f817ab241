# tests/unit/test_cli.py
from types import SimpleNamespace

from click.testing import CliRunner

from sfdict import exceptions as exc
from sfdict.cli import cli


class _DummyConfig:
    @staticmethod
    def from_env():
        return SimpleNamespace(api_version=None)


class _DummyAPI_OK:
    instance_url = "https://myorg.my.salesforce.com"
    api_version = "v60.0"

    def __init__(self, cfg):
        self.cfg = cfg

    def connect(self):
        return True

    def limits(self):
        return {"DailyApiRequests": {"Max": 15000, "Remaining": 14990}}


class _DummyAPI_Fail:
    def __init__(self, _cfg):
        pass

    def connect(self):
        raise exc.MissingCredentialsError(missing=["SF_CLIENT_ID", "SF_CLIENT_SECRET"])


def _patch_connection(monkeypatch, api_cls=_DummyAPI_OK):
    import sfdict.command_common as common

    monkeypatch.setattr(common, "SalesforceAPI", api_cls, raising=True)
    monkeypatch.setattr(common, "SFConfig", _DummyConfig, raising=True)
    monkeypatch.setattr(common, "get_source_api_version", lambda: None, raising=True)


def _patch_catalog(monkeypatch, module, catalog, directory=None):
    monkeypatch.setattr(module, "SchemaCatalog", lambda _api: catalog, raising=True)
    monkeypatch.setattr(module, "PermissionDirectory", lambda _api: directory, raising=True)


def test_cli_verbose_flags_help():
    r1 = CliRunner().invoke(cli, ["-v"])
    r2 = CliRunner().invoke(cli, ["-vv"])
    assert r1.exit_code == 0 and r2.exit_code == 0
    assert "Usage:" in r1.output and "Usage:" in r2.output


def test_subcommands_listed():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for name in ("login", "objects", "generate"):
        assert name in result.output


def test_login_prints_connection(monkeypatch):
    _patch_connection(monkeypatch)
    result = CliRunner().invoke(cli, ["login"])
    assert result.exit_code == 0, result.output
    assert "Connected to https://myorg.my.salesforce.com (API v60.0)" in result.output
    assert "14990 remaining of 15000" in result.output


def test_missing_credentials_clickerror(monkeypatch):
    _patch_connection(monkeypatch, _DummyAPI_Fail)
    result = CliRunner().invoke(cli, ["objects", "-s", "Account"])
    assert result.exit_code != 0
    assert "Missing Salesforce credentials:" in result.output
    assert "SF_CLIENT_ID" in result.output
    assert "sfdict login --help" in result.output


def test_api_version_flag_wins(monkeypatch):
    seen = {}

    class _Recording(_DummyAPI_OK):
        def __init__(self, cfg):
            seen["version"] = cfg.api_version

    _patch_connection(monkeypatch, _Recording)
    result = CliRunner().invoke(cli, ["login", "--api-version", "59.0"])
    assert result.exit_code == 0, result.output
    assert seen["version"] == "59.0"


class TestObjects:
    def test_explicit_list_verbatim(self, monkeypatch, make_catalog):
        import sfdict.command_objects as mod

        _patch_connection(monkeypatch)
        _patch_catalog(monkeypatch, mod, make_catalog())

        result = CliRunner().invoke(cli, ["objects", "-s", "Foo__c, Account,Foo__c"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["Account", "Foo__c"]

    def test_crawl_from_start_object(self, monkeypatch, make_catalog, make_object):
        import sfdict.command_objects as mod

        catalog = make_catalog(
            objects=[
                make_object("Enrolment__c", lookups=["Course__c"]),
                make_object("Course__c"),
            ]
        )
        _patch_connection(monkeypatch)
        _patch_catalog(monkeypatch, mod, catalog)

        result = CliRunner().invoke(cli, ["objects", "--start-object", "Enrolment__c"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["Course__c", "Enrolment__c"]

    def test_unknown_user_is_clickerror(self, monkeypatch, make_catalog, make_directory):
        import sfdict.command_objects as mod

        _patch_connection(monkeypatch)
        _patch_catalog(monkeypatch, mod, make_catalog(), make_directory())

        result = CliRunner().invoke(cli, ["objects", "--username", "ghost@example.com"])
        assert result.exit_code != 0
        assert "User not found" in result.output

    def test_batch_size_range_checked(self, monkeypatch):
        _patch_connection(monkeypatch)
        result = CliRunner().invoke(cli, ["objects", "--process-batch-size", "2"])
        assert result.exit_code == 2
        assert "--process-batch-size" in result.output


class TestGenerate:
    def test_writes_output_folder(self, monkeypatch, tmp_path, make_catalog, make_object):
        import sfdict.command_generate as mod

        catalog = make_catalog(objects=[make_object("Foo__c")])
        _patch_connection(monkeypatch)
        _patch_catalog(monkeypatch, mod, catalog)
        monkeypatch.setattr(mod, "get_name", lambda: None, raising=True)

        result = CliRunner().invoke(
            cli, ["generate", "-s", "Foo__c", "-d", str(tmp_path), "--skip-charts", "--verbose"]
        )
        assert result.exit_code == 0, result.output
        assert "Documented 1 objects" in result.output
        assert "  Foo__c" in result.output
        folders = list(tmp_path.glob("DataDictionary-*"))
        assert len(folders) == 1
        assert len(list(folders[0].glob("DataDictionary-*.xlsx"))) == 1

    def test_describe_failure_is_clickerror(self, monkeypatch, tmp_path, make_catalog):
        import sfdict.command_generate as mod

        _patch_connection(monkeypatch)
        _patch_catalog(monkeypatch, mod, make_catalog())
        monkeypatch.setattr(mod, "get_name", lambda: None, raising=True)

        result = CliRunner().invoke(cli, ["generate", "-s", "Typo__c", "-d", str(tmp_path)])
        assert result.exit_code != 0
        assert "Typo__c" in result.output


def test_malformed_timeout_is_clickerror(monkeypatch):
    import sfdict.command_common as common

    monkeypatch.setattr(common, "SalesforceAPI", _DummyAPI_OK, raising=True)
    monkeypatch.setenv("SF_TIMEOUT", "thirty")

    result = CliRunner().invoke(cli, ["login"])

    assert result.exit_code == 1
    assert "Invalid Salesforce configuration" in result.output
    assert "SF_TIMEOUT" in result.output
    assert "Traceback" not in result.output
