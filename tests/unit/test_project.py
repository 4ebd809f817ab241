import json

from sfdict.project import find_project_file, get_name, get_source_api_version


def test_reads_project_from_parent_dir(tmp_path):
    (tmp_path / "sfdx-project.json").write_text(
        json.dumps({"name": "acme", "sourceApiVersion": "60.0"}), encoding="utf-8"
    )
    nested = tmp_path / "force-app" / "main"
    nested.mkdir(parents=True)

    assert find_project_file(nested) == tmp_path / "sfdx-project.json"
    assert get_name(nested) == "acme"
    assert get_source_api_version(nested) == "60.0"


def test_no_project(tmp_path, monkeypatch):
    monkeypatch.setattr("sfdict.project.find_project_file", lambda start=None: None)
    assert get_name(tmp_path) is None
    assert get_source_api_version(tmp_path) is None


def test_unreadable_project_file(tmp_path):
    (tmp_path / "sfdx-project.json").write_text("{not json", encoding="utf-8")
    assert get_name(tmp_path) is None
