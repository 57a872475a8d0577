"""Tests for the pydantic domain models."""

from gas_complaints.core.models import (
    Complaint,
    ComplaintStatus,
    ReferralTarget,
    Role,
    SmsSettings,
    User,
)


def _complaint(**kwargs) -> Complaint:
    base = dict(
        id="C-000001",
        complainant=User(id="1234567890", full_name="Ali", role=Role.COMPLAINANT),
        project_address="Tehran",
        contact_phone_number="09123456789",
    )
    base.update(kwargs)
    return Complaint(**base)


def test_complaint_defaults() -> None:
    """Unspecified fields on ``Complaint`` use sensible defaults."""
    complaint = _complaint()
    assert complaint.status is ComplaintStatus.NEW
    assert complaint.comments == []
    assert complaint.referral_history == []
    assert complaint.referred_to_supervisor is False
    assert complaint.investigation_target is None
    assert complaint.created_at.tzinfo is not None


def test_document_uses_camel_case_and_omits_empty_fields() -> None:
    user = User(id="1", full_name="Ali", role=Role.ADMIN)
    doc = user.to_document()
    assert doc == {"id": "1", "fullName": "Ali", "role": "admin"}

    doc = _complaint().to_document()
    assert doc["contactPhoneNumber"] == "09123456789"
    assert doc["status"] == "جدید"
    assert "finalVerdict" not in doc


def test_snapshot_drops_password() -> None:
    user = User(id="1", full_name="Ali", role=Role.COMPLAINANT, password="secret")
    assert user.snapshot().password is None
    assert user.password == "secret"


def test_referral_targets_label() -> None:
    assert _complaint().referral_targets == ""
    assert _complaint(referred_to_supervisor=True).referral_targets == "ناظر"
    both = _complaint(referred_to_supervisor=True, referred_to_executor=True)
    assert both.referral_targets == "ناظر و مجری"
    assert both.is_referred_to(ReferralTarget.EXECUTOR)


def test_phone_for_resolves_parties() -> None:
    supervisor = User(
        id="2", full_name="S", role=Role.SUPERVISOR, phone_number="09120000001"
    )
    complaint = _complaint(supervisor=supervisor)
    assert complaint.phone_for(Role.COMPLAINANT) == "09123456789"
    assert complaint.phone_for(Role.SUPERVISOR) == "09120000001"
    assert complaint.phone_for(Role.EXECUTOR) is None


def test_settings_fill_missing_templates() -> None:
    settings = SmsSettings.model_validate(
        {"apiKey": "k", "lineNumber": "3000", "isEnabled": False,
         "templates": {"newComplaint": "ثبت شد {id}"}}
    )
    assert settings.templates.new_complaint == "ثبت شد {id}"
    assert "{id}" in settings.templates.final_verdict
    assert settings.is_enabled is False


def test_settings_null_values_use_defaults() -> None:
    settings = SmsSettings.model_validate(
        {"apiKey": "k", "templates": {"newComplaint": None, "finalVerdict": "done {id}"}}
    )
    assert settings.templates.new_complaint == SmsSettings().templates.new_complaint
    assert settings.templates.final_verdict == "done {id}"

    settings = SmsSettings.model_validate({"apiKey": "k", "templates": "garbage"})
    assert settings.api_key == "k"
    assert settings.templates == SmsSettings().templates
