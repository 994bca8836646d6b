import importlib.util
import json
from pathlib import Path

from rhdesk.services.pdf_renderer import contract_context, render_contract_html
from rhdesk.services.trial_period import calculate_trial_end_date

ROOT = Path(__file__).resolve().parents[1]


def test_contract_html_wraps_body_and_escapes_title():
    html = render_contract_html("<p>Article 1</p>", "CDD <test>")
    assert "<p>Article 1</p>" in html
    assert "CDD &lt;test&gt;" in html
    assert "Période d'essai :" not in html


def test_contract_html_trial_block():
    trial = calculate_trial_end_date("CDD", "2025-09-01", "2025-11-10")
    html = render_contract_html("<p>x</p>", trial=trial)
    assert "10 jours" in html
    assert "10/09/2025" in html


def test_contract_html_no_trial_block_for_short_cdd():
    trial = calculate_trial_end_date("CDD", "2025-09-01", "2025-09-03")
    html = render_contract_html("<p>x</p>", trial=trial.to_dict())
    assert "inclus" not in html


def test_contract_context_defaults():
    ctx = contract_context("<p>x</p>")
    assert ctx["title"] == "Contrat de travail"
    assert ctx["generated_at"]


def _load_cli():
    spec = importlib.util.spec_from_file_location("trial_end", ROOT / "scripts" / "trial_end.py")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def test_cli_text_and_json(capsys):
    cli = _load_cli()
    assert cli.main(["CDI", "2025-09-01"]) == 0
    assert "31/10/2025" in capsys.readouterr().out

    assert cli.main(["cdd", "2025-09-01", "--end", "2025-09-08", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data == {
        "end_date": "2025-09-01",
        "end_date_fr": "01/09/2025",
        "description": "1 jour",
        "kind": "computed",
        "has_trial": True,
    }


def test_cli_incomplete_input(capsys):
    cli = _load_cli()
    assert cli.main(["CDD", "2025-09-01"]) == 2
    assert "[ERR]" in capsys.readouterr().err
