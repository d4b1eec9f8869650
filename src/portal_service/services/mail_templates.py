"""HTML bodies for notification mail. User-supplied text is escaped."""
from __future__ import annotations

from html import escape

_FOOTER = '<p style="color: #7f8c8d; font-size: 12px;">This is an automated message from Job Portal.</p>'


def _wrap(body: str) -> str:
    return f'<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">{body}{_FOOTER}</div>'


def _quote(text: str) -> str:
    return (
        '<div style="background-color: #f8f9fa; padding: 15px; border-radius: 5px; margin: 10px 0;">'
        f"{escape(text)}</div>"
    )


def _attachment(name: str | None) -> str:
    return f"<p><strong>Attachment:</strong> {escape(name)}</p>" if name else ""


def admin_reply(employer_name: str, content: str, attachment_name: str | None) -> tuple[str, str]:
    subject = "Response to Your Job Request - Job Portal"
    body = (
        '<h2 style="color: #2c3e50;">Response to Your Job Request</h2>'
        f"<p>Dear {escape(employer_name)},</p>"
        "<p>We have reviewed your job request and would like to respond:</p>"
        f"{_quote(content)}{_attachment(attachment_name)}"
        "<p>Best regards,<br>Job Portal Team</p>"
    )
    return subject, _wrap(body)


def employer_reply(
    employer_name: str,
    employer_email: str,
    content: str,
    attachment_name: str | None,
) -> tuple[str, str]:
    subject = f"New reply from {employer_name} - Job Portal"
    body = (
        '<h2 style="color: #2c3e50;">Employer Reply Received</h2>'
        f"<p><strong>From:</strong> {escape(employer_name)} ({escape(employer_email)})</p>"
        f"{_quote(content)}{_attachment(attachment_name)}"
        "<p>Please log in to your admin dashboard to respond.</p>"
    )
    return subject, _wrap(body)


def password_reset(reset_url: str) -> tuple[str, str]:
    subject = "Password Reset Request - Job Portal"
    body = (
        '<h2 style="color: #2c3e50;">Reset your password</h2>'
        "<p>We received a request to reset your password. The link is valid for one hour.</p>"
        f'<p><a href="{escape(reset_url, quote=True)}">Reset password</a></p>'
        "<p>If you did not request this, you can ignore this e-mail.</p>"
    )
    return subject, _wrap(body)


def password_reset_confirmation() -> tuple[str, str]:
    subject = "Your password has been changed - Job Portal"
    body = (
        '<h2 style="color: #2c3e50;">Password changed</h2>'
        "<p>Your password was reset successfully. All sessions have been signed out.</p>"
    )
    return subject, _wrap(body)
