"""Email notifier for gatepass intents (parent approval links, warden updates)."""
import asyncio
import logging
from datetime import datetime
from html import escape
from typing import Optional

from gatepass.config import Settings, settings as default_settings
from gatepass.models.gatepass_request import GatepassRequest, GatepassStatus
from gatepass.services.notifications import NotificationIntent, NotificationResult, RecipientRole

logger = logging.getLogger(__name__)


def format_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%d %b %Y, %H:%M UTC")


class EmailNotifier:
    """Renders and sends gatepass emails in dev and production modes."""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings
        self.mode = settings.email_mode
        if self.mode == "prod":
            try:
                from sendgrid import SendGridAPIClient
                self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
            except ImportError:
                logger.error("SendGrid not installed but email_mode is 'prod'")
                raise
        else:
            self.sendgrid_client = None

    async def notify(self, intent: NotificationIntent) -> NotificationResult:
        """Render the intent for its recipient role and send it. Never raises."""
        try:
            if intent.recipient_role == RecipientRole.PARENT:
                recipients = [intent.request.parent_email]
                subject, text_content, html_content = self.render_parent_approval(intent)
            elif intent.recipient_role == RecipientRole.WARDEN:
                recipients = self.settings.get_warden_emails()
                subject, text_content, html_content = self.render_warden_notification(intent)
            else:
                return NotificationResult.failed(f"Unknown recipient role {intent.recipient_role!r}")
        except Exception as e:
            logger.error(f"Error rendering email for request {intent.request.id}: {str(e)}", exc_info=True)
            return NotificationResult.failed(f"render error: {str(e)}")

        if not recipients:
            return NotificationResult.failed(f"No {intent.recipient_role.value} address configured")

        failed = []
        for to_email in recipients:
            if not await self._send_email(to_email, subject, text_content, html_content):
                failed.append(to_email)

        if failed:
            return NotificationResult.failed(f"Delivery failed for {', '.join(failed)}")
        return NotificationResult.success()

    def render_parent_approval(self, intent: NotificationIntent) -> tuple[str, str, str]:
        """Approval request sent to the parent right after submission."""
        request = intent.request
        link = intent.approval_link or ""
        subject = f"Gatepass Approval Request from {request.student_name}"

        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; background-color: #f4f4f4; padding: 20px;">
                <div style="max-width: 600px; margin: 0 auto; background-color: white; padding: 40px; border-radius: 8px;">
                    <h2 style="color: #0ea5e9; margin-bottom: 20px;">Gatepass Approval Request</h2>
                    <p style="color: #666; font-size: 16px; line-height: 1.6;">Dear Parent/Guardian,</p>
                    <p style="color: #666; font-size: 16px; line-height: 1.6;">
                        Your ward <strong>{escape(request.student_name)}</strong> (Roll No: {escape(request.roll_number)})
                        has submitted a gatepass request that requires your approval.
                    </p>
                    <table style="width: 100%; color: #333; margin: 20px 0;">
                        <tr><td><strong>Destination:</strong></td><td>{escape(request.destination or "-")}</td></tr>
                        <tr><td><strong>Reason:</strong></td><td>{escape(request.reason)}</td></tr>
                        <tr><td><strong>Departure:</strong></td><td>{format_datetime(request.departure_date_time)}</td></tr>
                        <tr><td><strong>Return:</strong></td><td>{format_datetime(request.return_date_time)}</td></tr>
                    </table>
                    <p style="margin: 30px 0;">
                        <a href="{escape(link)}" style="background-color: #10b981; color: white; padding: 12px 30px; text-decoration: none; border-radius: 5px; display: inline-block; font-weight: bold;">
                            Review &amp; Approve/Reject
                        </a>
                    </p>
                    <p style="color: #999; font-size: 14px; margin-top: 30px; border-top: 1px solid #eee; padding-top: 20px;">
                        Or copy this link: <br>
                        <code style="background-color: #f5f5f5; padding: 10px; border-radius: 3px; word-break: break-all;">
                            {escape(link)}
                        </code>
                    </p>
                    <p style="color: #999; font-size: 12px; margin-top: 20px;">
                        If you did not expect this email, please contact the college administration.
                    </p>
                </div>
            </body>
        </html>
        """

        text_content = f"""
        Gatepass Approval Request

        Your ward {request.student_name} (Roll No: {request.roll_number}) has submitted a gatepass request.

        Destination: {request.destination or "-"}
        Reason: {request.reason}
        Departure: {format_datetime(request.departure_date_time)}
        Return: {format_datetime(request.return_date_time)}

        Review and approve or reject it here:
        {link}
        """

        return subject, text_content, html_content

    def render_warden_notification(self, intent: NotificationIntent) -> tuple[str, str, str]:
        """Status update sent to wardens once the parent has decided."""
        request = intent.request
        approved = intent.new_status == GatepassStatus.APPROVED_BY_PARENT
        status_text = "APPROVED" if approved else "REJECTED"
        status_color = "#10b981" if approved else "#ef4444"
        dashboard_link = f"{self.settings.get_app_base_url()}/dashboard"
        subject = f"Gatepass {intent.new_status.value} - {request.student_name} ({request.roll_number})"

        rejection_row = ""
        rejection_line = ""
        if request.parent_rejection_reason:
            rejection_row = (
                f"<tr><td><strong>Rejection Reason:</strong></td>"
                f"<td>{escape(request.parent_rejection_reason)}</td></tr>"
            )
            rejection_line = f"Rejection reason: {request.parent_rejection_reason}\n"

        if approved:
            next_step = "This request is now pending your final approval. Please review it in the warden dashboard."
        else:
            next_step = "This request has been rejected by the parent and does not require further action."

        html_content = f"""
        <html>
            <body style="font-family: Arial, sans-serif; background-color: #f4f4f4; padding: 20px;">
                <div style="max-width: 600px; margin: 0 auto; background-color: white; padding: 40px; border-radius: 8px;">
                    <h2 style="color: #0ea5e9; margin-bottom: 20px;">Gatepass Status Update</h2>
                    <p style="color: #666; font-size: 16px; line-height: 1.6;">
                        A gatepass request has been <strong style="color: {status_color};">{status_text}</strong> by the parent.
                    </p>
                    <table style="width: 100%; color: #333; margin: 20px 0;">
                        <tr><td><strong>Name:</strong></td><td>{escape(request.student_name)}</td></tr>
                        <tr><td><strong>Roll Number:</strong></td><td>{escape(request.roll_number)}</td></tr>
                        <tr><td><strong>Email:</strong></td><td>{escape(request.student_email or "-")}</td></tr>
                        <tr><td><strong>Destination:</strong></td><td>{escape(request.destination or "-")}</td></tr>
                        <tr><td><strong>Reason:</strong></td><td>{escape(request.reason)}</td></tr>
                        <tr><td><strong>Departure:</strong></td><td>{format_datetime(request.departure_date_time)}</td></tr>
                        {rejection_row}
                    </table>
                    <p style="color: #666; font-size: 16px; line-height: 1.6;">{next_step}</p>
                    <p style="margin: 30px 0;">
                        <a href="{escape(dashboard_link)}" style="background-color: #007bff; color: white; padding: 12px 30px; text-decoration: none; border-radius: 5px; display: inline-block; font-weight: bold;">
                            Go to Warden Dashboard
                        </a>
                    </p>
                </div>
            </body>
        </html>
        """

        text_content = f"""
        Gatepass Status Update

        A gatepass request has been {status_text} by the parent.

        Name: {request.student_name}
        Roll Number: {request.roll_number}
        Destination: {request.destination or "-"}
        Reason: {request.reason}
        Departure: {format_datetime(request.departure_date_time)}
        {rejection_line}
        {next_step}
        Dashboard: {dashboard_link}
        """

        return subject, text_content, html_content

    async def _send_email(self, to_email: str, subject: str, text_content: str, html_content: str) -> bool:
        """Internal method to send email via SendGrid or dev console."""
        if self.mode == "dev":
            logger.info(f"[DEV MODE] Email to {to_email}: {subject}")
            logger.info(f"[DEV MODE] Content:\n{text_content}")
            return True

        try:
            from sendgrid.helpers.mail import Mail, Email, To, Content

            mail = Mail(
                from_email=Email(self.settings.email_from, self.settings.email_from_name),
                to_emails=To(to_email),
                subject=subject,
                plain_text_content=Content("text/plain", text_content),
                html_content=Content("text/html", html_content)
            )

            # The SendGrid client is blocking
            response = await asyncio.to_thread(self.sendgrid_client.send, mail)

            if 200 <= response.status_code < 300:
                logger.info(f"Email sent to {to_email}: {subject}")
                return True
            else:
                logger.error(f"Failed to send email to {to_email}: {response.status_code}")
                return False
        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {str(e)}")
            return False
