"""
Email Service using Resend

Sends account emails. When no Resend API key is configured the message is
logged instead of sent, so local development needs no mail provider.
"""

import asyncio
import logging
from html import escape

import resend

from student_records.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if the email was sent (or logged in place of sending)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_credentials_email(to_email: str, username: str, password: str) -> bool:
    """Send a new account's login credentials to its owner."""
    safe_username = escape(username)
    safe_email = escape(to_email)
    safe_password = escape(password)
    login_url = f"{settings.frontend_url}/login"

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
            body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
            .header {{ color: #1a365d; margin-bottom: 24px; }}
            .credentials {{ background-color: #f3f4f6; padding: 16px 20px; border-radius: 8px; }}
            .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">Your Student Records Account</h1>

            <p>Hello {safe_username},</p>

            <p>An account has been created for you. Use these credentials to sign in:</p>

            <div class="credentials">
                <p><strong>Email:</strong> {safe_email}</p>
                <p><strong>Password:</strong> {safe_password}</p>
            </div>

            <p>Sign in at <a href="{login_url}">{login_url}</a> and change your password after your first login.</p>

            <div class="footer">
                <p>If you did not expect this email, please contact your administrator.</p>
            </div>
        </div>
    </body>
    </html>
    """
    return await send_email(
        to_email=to_email,
        subject="Your Student Records login credentials",
        html_content=html_content,
    )
