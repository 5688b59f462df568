"""
Email background tasks.

Verification, password reset and notification emails, sent through Resend.
Every task retries with a linear backoff when the provider call fails.
"""

from html import escape

from planboard.workers.celery_app import celery_app

_BUTTON_STYLE = (
    "background:#6366f1;color:#fff;padding:12px 24px;"
    "border-radius:6px;text-decoration:none;display:inline-block;"
)


def _send(to_email: str, subject: str, html: str) -> dict[str, str]:
    import resend

    from planboard.core.config import settings

    resend.api_key = settings.RESEND_API_KEY

    params: resend.Emails.SendParams = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    response = resend.Emails.send(params)
    return {"status": "sent", "message_id": response["id"]}


@celery_app.task(name="planboard.workers.email_tasks.send_verification_email", bind=True, max_retries=3)
def send_verification_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    name: str,
    token: str,
    frontend_url: str,
) -> dict[str, str]:
    """
    Send an email verification link.

    Args:
        to_email: Recipient email address.
        name: Recipient display name.
        token: Plain verification token (only its hash is stored).
        frontend_url: Frontend base URL for constructing the link.

    Returns:
        Dict with status and message_id.
    """
    try:
        from planboard.core.config import settings

        verify_url = f"{frontend_url}/verify-email?token={token}"
        return _send(
            to_email,
            "Verify your Planboard email",
            f"""
                <h2>Welcome to Planboard, {escape(name)}</h2>
                <p>Confirm your email address to start using your account.</p>
                <p><a href="{verify_url}" style="{_BUTTON_STYLE}">Verify Email</a></p>
                <p>This link expires in {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours.</p>
            """,
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="planboard.workers.email_tasks.send_password_reset_email", bind=True, max_retries=3)
def send_password_reset_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    name: str,
    token: str,
    frontend_url: str,
) -> dict[str, str]:
    """
    Send a password reset link.

    Args:
        to_email: Recipient email address.
        name: Recipient display name.
        token: Plain reset token.
        frontend_url: Frontend base URL for constructing the reset link.

    Returns:
        Dict with status and message_id.
    """
    try:
        from planboard.core.config import settings

        reset_url = f"{frontend_url}/reset-password?token={token}"
        return _send(
            to_email,
            "Reset your Planboard password",
            f"""
                <h2>Reset your password</h2>
                <p>Hi {escape(name)}, we received a request to reset your Planboard password.</p>
                <p><a href="{reset_url}" style="{_BUTTON_STYLE}">Reset Password</a></p>
                <p>This link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.</p>
                <p>If you did not request a password reset, you can safely ignore this email.</p>
            """,
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))


@celery_app.task(name="planboard.workers.email_tasks.send_notification_email", bind=True, max_retries=3)
def send_notification_email(
    self,  # type: ignore[no-untyped-def]
    to_email: str,
    subject: str,
    message: str,
) -> dict[str, str]:
    """Mirror an in-app notification by email."""
    try:
        return _send(
            to_email,
            subject,
            f"""
                <h2>{escape(subject)}</h2>
                <p>{escape(message)}</p>
            """,
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
