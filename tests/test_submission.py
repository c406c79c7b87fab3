"""
Tests for final submission validation
"""
import pytest

from construct_api.core.registration import validate_registration
from construct_api.core.submission import snapshot_registration, validate_final_submission
from construct_api.utils import normalize_url


@pytest.fixture
def registration(payload):
    record = validate_registration(payload()).record
    return record.model_copy(update={"id": "local-abc123"})


def _submission(**overrides):
    body = {
        "projectName": "Campus Compass",
        "leadEmail": "alex.lead@example.edu",
        "deckUrl": "https://example.com/deck",
        "repoUrl": "https://github.com/testers/compass",
    }
    body.update(overrides)
    return body


def test_valid_submission(registration):
    result = validate_final_submission(_submission(), registration, access_hash="abc")
    assert result.ok
    record = result.record
    assert record.team_name == "Testers United"
    assert record.access_hash == "abc"
    assert record.demo_url is None
    assert record.registration.id == "local-abc123"


def test_url_fields_must_be_http(registration):
    """deckUrl and repoUrl accept only http(s) with a host"""
    for bad in ("ftp://example.com/deck", "javascript:alert(1)", "https://", "not a url", ""):
        result = validate_final_submission(_submission(deckUrl=bad), registration)
        assert not result.ok, bad
        assert result.status == 400
        result = validate_final_submission(_submission(repoUrl=bad), registration)
        assert not result.ok, bad


def test_http_urls_accepted(registration):
    result = validate_final_submission(
        _submission(deckUrl="http://slides.example.org/x", repoUrl=" HTTPS://gitlab.com/a/b "),
        registration,
    )
    assert result.ok


def test_optional_urls(registration):
    result = validate_final_submission(
        _submission(demoUrl="https://demo.example.com", extraDocsUrl="https://docs.example.com"),
        registration,
    )
    assert result.ok
    assert result.record.demo_url == "https://demo.example.com"
    assert result.record.documentation_url == "https://docs.example.com"


def test_malformed_optional_url_rejected(registration):
    result = validate_final_submission(_submission(demoUrl="demo.example.com"), registration)
    assert result.error == "Demo link must be a valid http(s) URL."
    result = validate_final_submission(_submission(documentationUrl="ftp://docs"), registration)
    assert result.error == "Documentation link must be a valid http(s) URL."


def test_lead_email_must_match_registration(registration):
    result = validate_final_submission(_submission(leadEmail="someone@example.edu"), registration)
    assert not result.ok
    assert result.error == "Lead email does not match the registered record."


def test_lead_email_case_insensitive(registration):
    assert validate_final_submission(_submission(leadEmail="Alex.Lead@EXAMPLE.edu"), registration).ok


def test_project_name_falls_back_to_team_name(registration):
    body = _submission(projectName="", teamName="Testers United")
    result = validate_final_submission(body, registration)
    assert result.ok
    assert result.record.project_name == "Testers United"

    result = validate_final_submission(_submission(projectName=""), registration)
    assert result.error == "Project name is required."


def test_non_object_rejected():
    assert validate_final_submission(["deck"]).status == 400


def test_snapshot_copies_registration(registration):
    snapshot = snapshot_registration(registration)
    assert snapshot.team_name == registration.team_name
    assert snapshot.lead.email == "alex.lead@example.edu"
    assert len(snapshot.members) == 2


def test_normalize_url():
    assert normalize_url("https://example.com/a b") == ""
    assert normalize_url("mailto:a@b.co") == ""
    assert normalize_url(" https://example.com ") == "https://example.com"


def test_malformed_ports_rejected(registration):
    """Non-numeric and out-of-range ports are not valid URLs"""
    for bad in ("https://github.com:abc/team/repo", "https://github.com:99999/x"):
        assert normalize_url(bad) == ""
        result = validate_final_submission(_submission(repoUrl=bad), registration)
        assert result.error == "Git repository URL is required for final submissions."
        result = validate_final_submission(_submission(demoUrl=bad), registration)
        assert result.error == "Demo link must be a valid http(s) URL."
    assert normalize_url("https://github.com:8443/x") == "https://github.com:8443/x"
