import json
import sys

import pytest

from homematch.database import SupabaseClient
from homematch.scripts import run_match as run_match_script
from homematch.scripts.run_match import load_answers
from conftest import FakeSupabase, make_settings


def test_load_answers_accepts_wrapped_payload(tmp_path):
    path = tmp_path / "answers.json"
    path.write_text(json.dumps({"answers": {"location": "Leeds"}}), encoding="utf-8")

    assert load_answers(str(path)) == {"location": "Leeds"}


def test_load_answers_accepts_flat_payload(tmp_path):
    path = tmp_path / "answers.json"
    path.write_text(json.dumps({"location": "Leeds", "budget": "£200K-£400K"}), encoding="utf-8")

    assert load_answers(str(path))["budget"] == "£200K-£400K"


def test_load_answers_rejects_non_object(tmp_path):
    path = tmp_path / "answers.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ValueError):
        load_answers(str(path))


class UnreachableSupabase:
    def table(self, name):
        raise ConnectionError("no route to host")


@pytest.fixture
def cli(monkeypatch, tmp_path):
    """main() de run_match con settings, logging y store reemplazados."""
    path = tmp_path / "answers.json"
    path.write_text(json.dumps({"location": "Leeds"}), encoding="utf-8")
    calls = []

    async def fake_run_match(answers):
        calls.append(answers)
        return {"matches": [], "persona": None, "message": "none"}

    monkeypatch.setattr(run_match_script, "get_settings", make_settings)
    monkeypatch.setattr(run_match_script, "configure_logging", lambda level: None)
    monkeypatch.setattr(run_match_script, "run_match", fake_run_match)
    monkeypatch.setattr(sys, "argv", ["homematch-match", "--answers", str(path)])
    return calls


def test_main_stops_when_store_is_unreachable(cli, monkeypatch):
    monkeypatch.setattr(
        run_match_script, "get_supabase_client", lambda: SupabaseClient(UnreachableSupabase())
    )

    with pytest.raises(SystemExit) as exc:
        run_match_script.main()

    assert exc.value.code == 1
    assert cli == []


def test_main_runs_match_when_store_is_reachable(cli, monkeypatch, capsys):
    monkeypatch.setattr(run_match_script, "get_supabase_client", lambda: SupabaseClient(FakeSupabase()))

    with pytest.raises(SystemExit) as exc:
        run_match_script.main()

    assert exc.value.code == 0
    assert cli == [{"location": "Leeds"}]
    assert json.loads(capsys.readouterr().out)["matches"] == []
