"""
Tests for the command line entry point.
"""
import json
import sys

import pytest

import main


@pytest.fixture
def files(tmp_path, account_config_raw, make_ledger):
    accounts = tmp_path / "accounts.json"
    accounts.write_text(json.dumps(account_config_raw))

    month = tmp_path / "month.json"
    month.write_text(json.dumps(make_ledger([
        ("Service Revenue", "Actuals", 1000.0),
        ("Salaries", "Actuals", 400.0),
    ])))

    meta = tmp_path / "meta.yaml"
    meta.write_text("typeLabel: Facility\nentityName: Maple Grove\nmonthLabel: '2025-03-01'\n")

    tree = tmp_path / "tree.yaml"
    tree.write_text(
        "name: District 9\ntype: District\nchildren:\n"
        "  - name: Maple Grove\n    type: Facility\n    customerId: 1\n"
    )

    combined = tmp_path / "combined.json"
    combined.write_text(json.dumps(make_ledger([("Service Revenue", "Actuals", 10.0)], customer=1)))

    return {"accounts": accounts, "month": month, "meta": meta, "tree": tree, "combined": combined}


def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["main.py", *map(str, argv)])
    main.main()


class TestRender:
    def test_json_output(self, monkeypatch, capsys, files):
        run(monkeypatch, "render", "--month", files["month"], "--accounts", files["accounts"],
            "--meta", files["meta"])
        output = json.loads(capsys.readouterr().out)

        assert output["noRevenue"] is False
        assert output["document"]["header"]["lines"][0]["text"] == "Maple Grove"

    def test_text_output(self, monkeypatch, capsys, files):
        run(monkeypatch, "render", "--month", files["month"], "--accounts", files["accounts"],
            "--meta", files["meta"], "--format", "text")
        output = capsys.readouterr().out

        assert output.startswith("Maple Grove")
        assert "Mar - 2025" in output

    def test_missing_file_exits_with_error(self, monkeypatch, files, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            run(monkeypatch, "render", "--month", tmp_path / "nope.json", "--accounts", files["accounts"])
        assert exc_info.value.code == 1


class TestBundle:
    def test_bundle_json(self, monkeypatch, capsys, files):
        run(monkeypatch, "bundle", "--month", files["combined"], "--accounts", files["accounts"],
            "--tree", files["tree"], "--month-label", "2025-03-01")
        output = json.loads(capsys.readouterr().out)

        assert output["facilityCount"] == 1
        assert len(output["documents"]) == 2


class TestValidate:
    def test_valid_config(self, monkeypatch, capsys, files):
        run(monkeypatch, "validate", "--accounts", files["accounts"])
        assert "acyclic" in capsys.readouterr().out

    def test_cycle_exits_with_error(self, monkeypatch, tmp_path):
        path = tmp_path / "cycle.yaml"
        path.write_text("A:\n  parent: B\nB:\n  parent: A\n")

        with pytest.raises(SystemExit) as exc_info:
            run(monkeypatch, "validate", "--accounts", path)
        assert exc_info.value.code == 1

    def test_no_command_exits(self, monkeypatch):
        with pytest.raises(SystemExit):
            run(monkeypatch)
