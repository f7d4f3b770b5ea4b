"""
mail/templates.py -- HTML bodies for one-time code emails.
"""

from __future__ import annotations

import html


def build_code_email(heading: str, intro: str, code: str, ttl_minutes: int) -> str:
    """Render a minimal code email. All interpolated text is HTML-escaped."""
    return f"""
    <html>
    <body style="background-color:#f4f5f7;font-family:-apple-system,Segoe UI,Roboto,Arial,sans-serif;">
      <table align="center" width="100%" cellpadding="0" cellspacing="0">
        <tr><td align="center" style="padding:40px 0;">
          <table width="480" cellpadding="0" cellspacing="0"
                 style="background:#ffffff;border-radius:8px;box-shadow:0 2px 8px rgba(0,0,0,0.08);">
            <tr><td style="padding:32px;text-align:center;">
              <h1 style="color:#1f2937;font-size:20px;">{html.escape(heading)}</h1>
              <p style="color:#4a4a4a;font-size:14px;">{html.escape(intro)}</p>
              <p style="font-size:28px;letter-spacing:6px;font-weight:700;color:#111827;">{html.escape(code)}</p>
              <p style="font-size:12px;color:#999;margin-top:24px;">
                This code expires in {int(ttl_minutes)} minutes and can be used once.<br/>
                If you did not request it, you can ignore this email.
              </p>
            </td></tr>
          </table>
        </td></tr>
      </table>
    </body>
    </html>
    """


def verification_email(code: str, ttl_minutes: int) -> tuple[str, str]:
    """Return (subject, html) for an email-verification code."""
    return "Verification Code", build_code_email(
        "Verification Code", "Your verification code is:", code, ttl_minutes
    )


def password_reset_email(code: str, ttl_minutes: int) -> tuple[str, str]:
    """Return (subject, html) for a forgot-password code."""
    return "Forgot Password Code", build_code_email(
        "Forgot Password Code", "Your forgot password code is:", code, ttl_minutes
    )
