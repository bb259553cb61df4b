from postmarker.core import PostmarkClient
from database import database
from models import MessageLog, EmailTemplateAlias
from datetime import datetime, timezone
import asyncio
import os
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

# Verified sender in Postmark
DEFAULT_SENDER = os.getenv("EMAIL_SENDER", "no-reply@matty.ai")
BRAND = "Matty AI"


class EmailService:
    def __init__(self):
        postmark_token = os.getenv("POSTMARK_SERVER_TOKEN")
        if not postmark_token:
            logger.warning("POSTMARK_SERVER_TOKEN not set - emails will be logged but not sent")
            self.client = None
        else:
            self.client = PostmarkClient(server_token=postmark_token)
            logger.info("Postmark email client initialized")

    async def send_email(
        self,
        recipient: str,
        template_alias: EmailTemplateAlias,
        template_model: Dict[str, Any],
        user_id: Optional[str] = None,
        subject: str = BRAND
    ) -> MessageLog:
        """Send a built-in template email and record a message log entry."""
        db = database.get_db()

        message_log = MessageLog(
            user_id=user_id,
            recipient=recipient,
            template_alias=template_alias,
            subject=subject,
            status="queued"
        )

        try:
            if self.client:
                html_body = self._build_html_body(template_alias, template_model)
                text_body = self._build_text_body(template_alias, template_model)

                loop = asyncio.get_event_loop()
                response = await loop.run_in_executor(
                    None,
                    lambda: self.client.emails.send(
                        From=DEFAULT_SENDER,
                        To=recipient,
                        Subject=subject,
                        HtmlBody=html_body,
                        TextBody=text_body,
                        TrackOpens=True,
                        TrackLinks="HtmlOnly",
                        Tag=template_alias.value
                    ),
                )

                message_log.postmark_message_id = response["MessageID"]
                message_log.status = "sent"
                message_log.sent_at = datetime.now(timezone.utc)
                logger.info(f"Email sent to {recipient}: {response['MessageID']}")
            else:
                # Dev mode - just log
                message_log.status = "sent"
                message_log.sent_at = datetime.now(timezone.utc)
                logger.info(f"[DEV MODE] Email logged (not sent) to {recipient}: {subject}")

        except Exception as e:
            message_log.status = "failed"
            message_log.error_message = str(e)
            message_log.provider_error_type = type(e).__name__
            logger.error(f"Failed to send email to {recipient}: {e}")

        await db.message_logs.insert_one(message_log.model_dump())
        return message_log

    def _wrap_html(self, title: str, content: str) -> str:
        return f"""
            <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <div style="background-color: #1e1b4b; padding: 20px; border-radius: 8px 8px 0 0;">
                    <h1 style="color: #a5b4fc; margin: 0;">{title}</h1>
                </div>
                <div style="padding: 20px; border: 1px solid #e2e8f0; border-top: none; border-radius: 0 0 8px 8px;">
                    {content}
                </div>
                <p style="color: #94a3b8; font-size: 12px; text-align: center;">{BRAND}: design anything, faster.</p>
            </body>
            </html>
            """

    def _button(self, href: str, label: str) -> str:
        return f"""
                    <p style="margin: 30px 0;">
                        <a href="{href}"
                           style="background-color: #6366f1; color: white; padding: 12px 24px;
                                  text-decoration: none; border-radius: 6px; display: inline-block;">
                            {label}
                        </a>
                    </p>"""

    def _build_html_body(self, template_alias: EmailTemplateAlias, model: Dict[str, Any]) -> str:
        """Build HTML email body based on template type."""
        name = model.get("full_name", "there")

        if template_alias == EmailTemplateAlias.WELCOME:
            return self._wrap_html(f"Welcome to {BRAND}", f"""
                    <p>Hello {name},</p>
                    <p>Your account is ready. Start from a template or a blank canvas.</p>
                    {self._button(model.get('dashboard_link', '#'), 'Open your dashboard')}
            """)
        if template_alias == EmailTemplateAlias.VERIFICATION_CODE:
            return self._wrap_html("Verify your email", f"""
                    <p>Hello {name},</p>
                    <p>Your verification code is:</p>
                    <p style="font-size: 32px; font-weight: 700; letter-spacing: 6px;">{model.get('code')}</p>
                    <p style="color: #666; font-size: 14px;">This code expires in {model.get('expires_minutes', 3)} minutes.</p>
            """)
        if template_alias == EmailTemplateAlias.PASSWORD_RESET:
            return self._wrap_html("Reset your password", f"""
                    <p>Hello {name},</p>
                    <p>We received a request to reset your password.</p>
                    {self._button(model.get('reset_link', '#'), 'Reset Password')}
                    <p style="color: #666; font-size: 14px;">
                        This link expires in {model.get('expires_minutes', 7)} minutes. If you didn't request this, please ignore this email.
                    </p>
            """)
        if template_alias == EmailTemplateAlias.TEAM_INVITATION:
            return self._wrap_html("You're invited to a team", f"""
                    <p>{model.get('inviter_name', 'A teammate')} invited you to join
                    <strong>{model.get('team_name', 'their team')}</strong> as {model.get('role', 'member')}.</p>
                    {self._button(model.get('invite_link', '#'), 'Accept Invitation')}
                    <p style="color: #666; font-size: 14px;">This invitation expires in 7 days.</p>
            """)
        if template_alias == EmailTemplateAlias.PAYMENT_RECEIPT:
            return self._wrap_html("Payment received", f"""
                    <p>Hello {name},</p>
                    <p>Thanks for upgrading to {BRAND} Premium.</p>
                    <table style="width: 100%; border-collapse: collapse;">
                        <tr><td>Plan</td><td><strong>{model.get('plan')}</strong></td></tr>
                        <tr><td>Payment ID</td><td>{model.get('payment_id')}</td></tr>
                        <tr><td>Order ID</td><td>{model.get('order_id')}</td></tr>
                        <tr><td>Valid until</td><td>{model.get('end_date')}</td></tr>
                    </table>
            """)
        return self._wrap_html(BRAND, f"<p>{model.get('message', '')}</p>")

    def _build_text_body(self, template_alias: EmailTemplateAlias, model: Dict[str, Any]) -> str:
        name = model.get("full_name", "there")

        if template_alias == EmailTemplateAlias.WELCOME:
            return f"Hello {name},\n\nYour {BRAND} account is ready.\n{model.get('dashboard_link', '')}\n"
        if template_alias == EmailTemplateAlias.VERIFICATION_CODE:
            return (
                f"Hello {name},\n\nYour verification code is {model.get('code')}.\n"
                f"It expires in {model.get('expires_minutes', 3)} minutes.\n"
            )
        if template_alias == EmailTemplateAlias.PASSWORD_RESET:
            return (
                f"Hello {name},\n\nReset your password here:\n{model.get('reset_link', '')}\n\n"
                f"This link expires in {model.get('expires_minutes', 7)} minutes.\n"
            )
        if template_alias == EmailTemplateAlias.TEAM_INVITATION:
            return (
                f"{model.get('inviter_name', 'A teammate')} invited you to join "
                f"{model.get('team_name', 'their team')} on {BRAND}.\n\n"
                f"Accept: {model.get('invite_link', '')}\n\nThis invitation expires in 7 days.\n"
            )
        if template_alias == EmailTemplateAlias.PAYMENT_RECEIPT:
            return (
                f"Hello {name},\n\nPayment received for the {model.get('plan')} plan.\n"
                f"Payment ID: {model.get('payment_id')}\nOrder ID: {model.get('order_id')}\n"
                f"Valid until: {model.get('end_date')}\n"
            )
        return model.get("message", "")

    async def send_welcome_email(self, recipient: str, full_name: str, user_id: str, dashboard_link: str):
        await self.send_email(
            recipient=recipient,
            template_alias=EmailTemplateAlias.WELCOME,
            template_model={"full_name": full_name, "dashboard_link": dashboard_link},
            user_id=user_id,
            subject=f"Welcome to {BRAND}",
        )

    async def send_verification_code_email(self, recipient: str, full_name: str, user_id: str, code: str):
        await self.send_email(
            recipient=recipient,
            template_alias=EmailTemplateAlias.VERIFICATION_CODE,
            template_model={"full_name": full_name, "code": code, "expires_minutes": 3},
            user_id=user_id,
            subject=f"{code} is your {BRAND} verification code",
        )

    async def send_password_reset_email(self, recipient: str, full_name: str, user_id: str, reset_link: str):
        await self.send_email(
            recipient=recipient,
            template_alias=EmailTemplateAlias.PASSWORD_RESET,
            template_model={"full_name": full_name, "reset_link": reset_link, "expires_minutes": 7},
            user_id=user_id,
            subject=f"Reset your {BRAND} password",
        )

    async def send_team_invitation_email(
        self,
        recipient: str,
        team_name: str,
        inviter_name: str,
        role: str,
        invite_link: str,
    ):
        """Invitation emails go to addresses that may not have an account yet."""
        await self.send_email(
            recipient=recipient,
            template_alias=EmailTemplateAlias.TEAM_INVITATION,
            template_model={
                "team_name": team_name,
                "inviter_name": inviter_name,
                "role": role,
                "invite_link": invite_link,
            },
            subject=f"You've been invited to join {team_name} on {BRAND}",
        )

    async def send_payment_receipt_email(
        self,
        recipient: str,
        full_name: str,
        user_id: str,
        plan: str,
        payment_id: str,
        order_id: str,
        end_date: str,
    ):
        await self.send_email(
            recipient=recipient,
            template_alias=EmailTemplateAlias.PAYMENT_RECEIPT,
            template_model={
                "full_name": full_name,
                "plan": plan,
                "payment_id": payment_id,
                "order_id": order_id,
                "end_date": end_date,
            },
            user_id=user_id,
            subject=f"Your {BRAND} Premium receipt",
        )


email_service = EmailService()
