"""Unit tests for the run snapshot."""

import json

from nuget_attributions.models import HtmlLicense, LibraryInfo
from nuget_attributions.snapshot import RunSnapshot


def test_load_missing_file(tmp_path):
    snapshot = RunSnapshot.load(tmp_path / "LastRunInfos.json")

    assert len(snapshot) == 0
    assert snapshot.find("A", "1.0") is None


def test_load_invalid_json(tmp_path):
    path = tmp_path / "LastRunInfos.json"
    path.write_text("{not json", encoding="utf-8")

    assert len(RunSnapshot.load(path)) == 0


def test_load_non_list(tmp_path):
    path = tmp_path / "LastRunInfos.json"
    path.write_text(json.dumps({"PackageName": "A"}), encoding="utf-8")

    assert len(RunSnapshot.load(path)) == 0


def test_save_and_load(tmp_path):
    path = tmp_path / "nested" / "LastRunInfos.json"
    info = LibraryInfo(
        package_name="Some.Package",
        package_version="2.0.0",
        license_text="text",
        license_text_source="LicenseUrl",
        license_text_html=HtmlLicense(url="https://example.com/license", significant_text="Terms"),
    )

    RunSnapshot.save(path, [info])
    snapshot = RunSnapshot.load(path)

    found = snapshot.find("Some.Package", "2.0.0")
    assert found is not None
    assert found.license_text_source == "LicenseUrl"
    assert found.license_text_html.significant_text == "Terms"


def test_find_matches_exact_version(tmp_path):
    snapshot = RunSnapshot(
        [
            LibraryInfo(package_name="A", package_version="1.0"),
            LibraryInfo(package_name="A", package_version="2.0", description="second"),
        ]
    )

    assert snapshot.find("A", "2.0").description == "second"
    assert snapshot.find("A", "3.0") is None


def test_first_entry_wins():
    snapshot = RunSnapshot(
        [
            LibraryInfo(package_name="A", package_version="1.0", description="first"),
            LibraryInfo(package_name="A", package_version="1.0", description="second"),
        ]
    )

    assert snapshot.find("A", "1.0").description == "first"
    assert len(snapshot) == 2
