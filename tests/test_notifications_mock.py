import pytest
from unittest.mock import MagicMock, patch

from doctors_portal.core.config import Settings
from doctors_portal.models.db_models import Booking
from doctors_portal.services.notification_service import EmailNotifier

BOOKING = Booking(
    id="7",
    treatment="Cleaning",
    date="12-12-2025",
    slot="10am",
    patient="patient@test.com",
    patientName="Alice",
    paid=True,
    transactionId="pi_42",
)


def make_notifier(email_enabled=True, username="user", password="pass"):
    config = {
        "clinic_name": "Test Clinic",
        "notifications": {
            "email_enabled": email_enabled,
            "booking_subject": "Booked {treatment}",
            "booking_template": "Hi {name}, {treatment} on {date} at {slot}. {clinic_name}",
            "payment_subject": "Paid {treatment}",
            "payment_template": "Hi {name}, payment {transaction_id} received.",
        },
    }
    settings = Settings(SMTP_USERNAME=username, SMTP_PASSWORD=password)
    return EmailNotifier(config, settings)


@pytest.mark.asyncio
@patch("doctors_portal.services.notification_service.smtplib.SMTP")
async def test_booking_confirmation_email(mock_smtp_cls):
    mock_server = MagicMock()
    mock_smtp_cls.return_value = mock_server

    result = await make_notifier().notify_booking_confirmed(BOOKING)

    assert result is True
    mock_smtp_cls.assert_called_once_with("smtp.gmail.com", 587, timeout=10)
    mock_server.starttls.assert_called_once()
    mock_server.login.assert_called_with("user", "pass")
    mock_server.sendmail.assert_called_once()
    args, _ = mock_server.sendmail.call_args
    assert args[1] == "patient@test.com"
    assert "Subject: Booked Cleaning" in args[2]
    mock_server.quit.assert_called_once()


@pytest.mark.asyncio
@patch("doctors_portal.services.notification_service.smtplib.SMTP")
async def test_payment_confirmation_email(mock_smtp_cls):
    mock_server = MagicMock()
    mock_smtp_cls.return_value = mock_server
    notifier = make_notifier()

    with patch.object(notifier, "send_email", wraps=notifier.send_email) as send:
        result = await notifier.notify_payment_confirmed(BOOKING)

    assert result is True
    subject, body, to_email = send.call_args.args
    assert subject == "Paid Cleaning"
    assert body == "Hi Alice, payment pi_42 received."
    assert to_email == "patient@test.com"


@pytest.mark.asyncio
@patch("doctors_portal.services.notification_service.smtplib.SMTP")
async def test_disabled_email_is_skipped(mock_smtp_cls):
    result = await make_notifier(email_enabled=False).notify_booking_confirmed(BOOKING)

    assert result is False
    mock_smtp_cls.assert_not_called()


@pytest.mark.asyncio
@patch("doctors_portal.services.notification_service.smtplib.SMTP")
async def test_missing_credentials_is_skipped(mock_smtp_cls):
    result = await make_notifier(username="", password="").notify_booking_confirmed(BOOKING)

    assert result is False
    mock_smtp_cls.assert_not_called()


@pytest.mark.asyncio
@patch("doctors_portal.services.notification_service.smtplib.SMTP")
async def test_smtp_failure_propagates_to_dispatcher(mock_smtp_cls):
    mock_server = MagicMock()
    mock_server.login.side_effect = OSError("auth failed")
    mock_smtp_cls.return_value = mock_server

    with pytest.raises(OSError):
        await make_notifier().notify_booking_confirmed(BOOKING)
    mock_server.quit.assert_called_once()
