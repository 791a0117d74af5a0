"""HTML bodies for transactional emails."""

from html import escape
from urllib.parse import quote, urlencode


def build_verify_device_url(origin: str, token: str, email: str) -> str:
    """Link opened from the verification email, consumed by the /verify-device page."""
    query = urlencode({"token": token, "email": email}, quote_via=quote)
    return f"{origin}/verify-device?{query}"


def render_device_verification_email(app_name: str, verify_url: str, expires_minutes: int) -> tuple[str, str]:
    """Return (subject, html) for a new device verification email."""
    subject = f"Verify new device - {app_name}"
    app = escape(app_name)
    link = escape(verify_url, quote=True)
    html_body = f"""\
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2 style="color: #2c3e50;">New Device Registration</h2>
            <p>A new device is trying to access your <strong>{app}</strong> account.</p>
            <p>If this was you, click the button below to verify it:</p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{link}"
                   style="background-color: #3498db; color: #fff; padding: 12px 30px;
                          text-decoration: none; border-radius: 5px; font-size: 16px;">
                    Verify Device
                </a>
            </div>
            <p style="color: #7f8c8d; font-size: 13px;">
                This link expires in {expires_minutes} minutes.
                If you didn't request this, ignore this email.
            </p>
        </div>
    </body>
    </html>
    """
    return subject, html_body
