from datetime import date, datetime

from rhdesk.services.trial_period import (
    NO_TRIAL_DESCRIPTION,
    NO_TRIAL_PHRASE,
    add_days_minus_one_day,
    add_months_minus_one_day,
    calculate_trial_end_date,
    duration_in_days,
    format_date_fr,
    parse_calendar_date,
)


# ---- dates

def test_duration_is_symmetric():
    assert duration_in_days("2025-09-01", "2025-09-08") == 7
    assert duration_in_days("2025-09-08", "2025-09-01") == 7


def test_duration_across_dst_change_is_whole_days():
    # passage à l'heure d'été (30/03/2025) : pas de fraction de jour
    assert duration_in_days("2025-03-29", "2025-03-31") == 2


def test_add_months_minus_one_day_regular():
    assert add_months_minus_one_day("2025-09-01", 2) == date(2025, 10, 31)
    assert add_months_minus_one_day("2025-11-15", 2) == date(2026, 1, 14)


def test_add_months_clamps_to_month_end():
    # 31/01 + 1 mois = 28/02 (pas de débordement en mars), puis la veille
    assert add_months_minus_one_day("2025-01-31", 1) == date(2025, 2, 27)
    assert add_months_minus_one_day("2024-01-31", 1) == date(2024, 2, 28)
    assert add_months_minus_one_day("2025-08-31", 2) == date(2025, 10, 30)


def test_add_days_minus_one_day():
    assert add_days_minus_one_day("2025-09-01", 14) == date(2025, 9, 14)
    assert add_days_minus_one_day("2025-09-01", 1) == date(2025, 9, 1)


def test_format_date_fr():
    assert format_date_fr("2025-10-31") == "31/10/2025"
    assert format_date_fr(date(2025, 1, 5)) == "05/01/2025"
    assert format_date_fr("") == ""
    assert format_date_fr(None) == ""


def test_parse_calendar_date_ignores_time_part():
    assert parse_calendar_date("2025-09-01T23:30:00+02:00") == date(2025, 9, 1)
    assert parse_calendar_date(datetime(2025, 9, 1, 23, 59)) == date(2025, 9, 1)
    assert parse_calendar_date("01/09/2025") is None


# ---- CDI

def test_cdi_two_months():
    res = calculate_trial_end_date("CDI", "2025-09-01", None, False)
    assert res.end_date == date(2025, 10, 31)
    assert res.description == "2 mois"
    assert res.has_trial


def test_cdi_renewed_four_months():
    res = calculate_trial_end_date("CDI", "2025-09-01", renew=True)
    assert res.end_date == date(2025, 12, 31)
    assert res.description == "4 mois (renouvelée)"


def test_cdi_ignores_end_date():
    a = calculate_trial_end_date("CDI", "2025-09-01")
    b = calculate_trial_end_date("CDI", "2025-09-01", "2025-09-10")
    assert a == b


def test_contract_type_is_case_insensitive():
    results = {calculate_trial_end_date(t, "2025-09-01") for t in ("cdi", "CDI", "Cdi", " cdi ")}
    assert len(results) == 1


def test_month_end_start():
    res = calculate_trial_end_date("CDI", "2025-12-31")
    # 31/12 + 2 mois = 28/02/2026, veille = 27/02/2026
    assert res.end_date == date(2026, 2, 27)


# ---- CDD

def test_cdd_six_months_or_more_gives_one_month():
    for end in ("2026-02-28", "2026-10-06"):  # 180 jours, 400 jours
        res = calculate_trial_end_date("CDD", "2025-09-01", end)
        assert res.description == "1 mois"
        assert res.end_date == date(2025, 9, 30)


def test_cdd_threshold_boundary():
    assert duration_in_days("2025-09-01", "2026-02-28") == 180
    assert calculate_trial_end_date("CDD", "2025-09-01", "2026-02-27").description == "14 jours"


def test_cdd_one_day_per_week():
    # 70 jours -> 10 jours d'essai
    res = calculate_trial_end_date("CDD", "2025-09-01", "2025-11-10")
    assert res.description == "10 jours"
    assert res.end_date == date(2025, 9, 10)


def test_cdd_capped_at_fourteen_days():
    res = calculate_trial_end_date("CDD", "2025-09-01", "2025-12-10")  # 100 jours
    assert res.description == "14 jours"
    assert res.end_date == date(2025, 9, 14)
    res = calculate_trial_end_date("CDD", "2025-09-01", "2026-01-20")  # 141 jours
    assert res.description == "14 jours"


def test_cdd_one_week_singular():
    res = calculate_trial_end_date("CDD", "2025-09-01", "2025-09-08")
    assert res.description == "1 jour"
    assert res.end_date == date(2025, 9, 1)
    assert res.to_dict()["end_date"] == "2025-09-01"


def test_cdd_under_one_week_has_no_trial():
    res = calculate_trial_end_date("CDD", "2025-09-01", "2025-09-06")
    assert res is not None
    assert res.end_date == date(2025, 9, 1)
    assert res.description == NO_TRIAL_DESCRIPTION
    assert NO_TRIAL_PHRASE in res.description
    assert res.kind == "none"
    assert not res.has_trial


# ---- saisies incomplètes / non gérées

def test_missing_start_date_returns_none():
    for t in ("CDI", "CDD", "stage"):
        assert calculate_trial_end_date(t, None, "2025-12-31") is None
        assert calculate_trial_end_date(t, "", "2025-12-31") is None


def test_cdd_without_end_date_returns_none():
    assert calculate_trial_end_date("CDD", "2025-09-01") is None
    assert calculate_trial_end_date("CDD", "2025-09-01", "") is None


def test_unsupported_contract_type_returns_none():
    assert calculate_trial_end_date("stage", "2025-09-01", "2025-12-31") is None
    assert calculate_trial_end_date(None, "2025-09-01") is None


def test_invalid_dates_never_raise():
    assert calculate_trial_end_date("CDI", "2025-13-45") is None
    assert calculate_trial_end_date("CDD", "2025-09-01", "pas une date") is None
    assert calculate_trial_end_date("CDI", "9999-12-01") is None


def test_idempotent():
    a = calculate_trial_end_date("CDD", "2025-09-01", "2025-11-10")
    b = calculate_trial_end_date("CDD", "2025-09-01", "2025-11-10")
    assert a == b
    assert a.to_dict() == b.to_dict()


def test_rule_metadata_exposed():
    res = calculate_trial_end_date("CDD", "2025-09-01", "2025-11-10")
    assert res.rule["source"] == "code_travail"
    assert "L1242-10" in res.rule["source_ref"]
