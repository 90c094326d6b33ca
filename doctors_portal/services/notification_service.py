import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from doctors_portal.core.logger import logger
from doctors_portal.models.db_models import Booking


class EmailNotifier:
    """
    Sends booking and payment confirmations to the patient by email.
    SMTP runs in a worker thread so the event loop never blocks.
    """

    def __init__(self, config: Dict[str, Any], settings):
        self.clinic_name = config.get("clinic_name", "Doctors Portal")
        self.notifications = config.get("notifications", {})
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.smtp_timeout = settings.SMTP_TIMEOUT

    def _context(self, booking: Booking) -> Dict[str, Any]:
        return {
            "name": booking.patient_name or booking.patient,
            "treatment": booking.treatment,
            "date": booking.date,
            "slot": booking.slot or "",
            "transaction_id": booking.transaction_id or "",
            "clinic_name": self.clinic_name,
        }

    async def notify_booking_confirmed(self, booking: Booking) -> bool:
        return await self._notify(booking, "booking_subject", "booking_template")

    async def notify_payment_confirmed(self, booking: Booking) -> bool:
        return await self._notify(booking, "payment_subject", "payment_template")

    async def _notify(self, booking: Booking, subject_key: str, template_key: str) -> bool:
        context = self._context(booking)
        subject = self.notifications.get(subject_key, "").format(**context)
        body = self.notifications.get(template_key, "").format(**context)
        return await asyncio.to_thread(self.send_email, subject, body, booking.patient)

    def send_email(self, subject: str, body: str, to_email: Optional[str]) -> bool:
        """
        Sends an email using SMTP (e.g., Gmail).
        Returns: True if successful, False otherwise.
        """
        if not self.notifications.get("email_enabled", False):
            logger.info("ℹ️ Email notifications are disabled in config.")
            return False

        if not to_email:
            logger.error("❌ No recipient email on booking.")
            return False

        if not self.smtp_username or not self.smtp_password:
            logger.error("❌ SMTP credentials missing in .env.")
            return False

        msg = MIMEMultipart()
        msg['From'] = self.smtp_username
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'plain'))

        server = smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.smtp_timeout)
        try:
            server.starttls()
            server.login(self.smtp_username, self.smtp_password)
            server.sendmail(self.smtp_username, to_email, msg.as_string())
        finally:
            server.quit()

        logger.info(f"✅ Email sent to {to_email} with subject: '{subject}'")
        return True
