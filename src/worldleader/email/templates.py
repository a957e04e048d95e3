"""
Email templates for WorldLeader.io.

All templates use inline CSS for email client compatibility.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

# Color constants
BG_PAGE = "#F3F4F6"
BG_CARD = "#FFFFFF"
BLUE = "#1E40AF"
GOLD = "#F59E0B"
TEXT_PRIMARY = "#111827"
TEXT_SECONDARY = "#4B5563"
BORDER = "#E5E7EB"


def _base_layout(content: str, app_name: str = "WorldLeader.io") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Arial, Helvetica, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 24px;">
                            <span style="font-size: 24px; font-weight: 700; color: {BLUE};">{app_name}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 36px 32px;">
                            {content}
                        </td>
                    </tr>
                    <tr>
                        <td align="center" style="padding-top: 24px;">
                            <p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
                                This email was sent by {app_name}.<br>
                                Positions are for entertainment only and carry no real-world value.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _button(url: str, label: str) -> str:
    """Render a CTA button."""
    return f"""\
<table role="presentation" cellspacing="0" cellpadding="0" border="0" style="margin: 28px auto;">
    <tr>
        <td align="center" style="background-color: {BLUE}; border-radius: 6px;">
            <a href="{url}" target="_blank" style="display: inline-block; padding: 12px 28px; color: #FFFFFF; font-size: 16px; font-weight: 700; text-decoration: none; border-radius: 6px;">
                {label}
            </a>
        </td>
    </tr>
</table>"""


def welcome_email(username: str, continent: str, initial_rank: int, leaderboard_url: str) -> tuple[str, str, str]:
    """
    Welcome email sent after registration.

    Returns:
        (subject, html_body, text_body)
    """
    name = escape(username)
    subject = "Welcome to WorldLeader.io - Your Journey Begins!"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 24px; font-weight: 700; margin: 0 0 16px 0;">Welcome, {name}!</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">
    You're now competing in <strong style="color: {TEXT_PRIMARY};">{escape(continent)}</strong>.
</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 24px 0;">
    Your starting rank is <strong style="color: {GOLD};">#{initial_rank}</strong>. Every dollar buys a position. Climb to conquer the world!
</p>
{_button(leaderboard_url, "View the Leaderboard")}"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {username},\n\n"
        f"Welcome to WorldLeader.io! You're now competing in {continent}.\n"
        f"Your starting rank is #{initial_rank}.\n\n"
        f"See where you stand: {leaderboard_url}\n\n"
        f"-- The WorldLeader.io Team"
    )
    return subject, html_body, text_body


def overtaken_email(
    username: str,
    overtaken_by: str,
    continent: str,
    new_rank: int,
    positions_lost: int,
    leaderboard_url: str,
) -> tuple[str, str, str]:
    """
    Sent to each user pushed down by someone else's purchase.

    Returns:
        (subject, html_body, text_body)
    """
    subject = f"{overtaken_by} just overtook you on WorldLeader.io!"
    plural = "position" if positions_lost == 1 else "positions"
    content = f"""\
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {escape(username)},</p>
<p style="color: {TEXT_PRIMARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">
    <strong>{escape(overtaken_by)}</strong> just overtook you on the <strong>{escape(continent)}</strong> leaderboard!
</p>
<p style="color: {TEXT_PRIMARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">
    You dropped {positions_lost} {plural} and are now ranked <strong style="color: {GOLD};">#{new_rank}</strong>.
</p>
<p style="color: {TEXT_SECONDARY}; font-size: 14px; font-style: italic; margin: 0;">
    The world is watching - will you climb back?
</p>
{_button(leaderboard_url, "Climb Higher")}"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {username},\n\n"
        f"{overtaken_by} just overtook you on the {continent} leaderboard! "
        f"You're now ranked #{new_rank}.\n\n"
        f"The world is watching - will you climb back?\n\n"
        f"{leaderboard_url}\n\n"
        f"-- The WorldLeader.io Team"
    )
    return subject, html_body, text_body


def password_reset_email(username: str, reset_url: str, ttl_minutes: int = 60) -> tuple[str, str, str]:
    """
    Password reset link.

    Returns:
        (subject, html_body, text_body)
    """
    subject = "Reset Your WorldLeader.io Password"
    content = f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 24px; font-weight: 700; margin: 0 0 16px 0;">Reset your password</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 8px 0;">Hi {escape(username)},</p>
<p style="color: {TEXT_SECONDARY}; font-size: 16px; line-height: 1.6; margin: 0 0 24px 0;">
    We received a request to reset your password. Click below to choose a new one.
</p>
{_button(reset_url, "Reset Password")}
<p style="color: {TEXT_SECONDARY}; font-size: 13px; line-height: 1.5; margin: 24px 0 0 0;">
    This link expires in <strong style="color: {TEXT_PRIMARY};">{ttl_minutes} minutes</strong>.
    If you didn't request a reset, ignore this email; your password stays unchanged.
</p>
<hr style="border: none; border-top: 1px solid {BORDER}; margin: 24px 0;">
<p style="color: {TEXT_SECONDARY}; font-size: 12px; line-height: 1.5; margin: 0;">
    If the button doesn't work, copy and paste this URL:<br>
    <a href="{reset_url}" style="color: {BLUE}; word-break: break-all;">{reset_url}</a>
</p>"""
    html_body = _base_layout(content)
    text_body = (
        f"Hi {username},\n\n"
        f"Reset your WorldLeader.io password by visiting this link:\n\n{reset_url}\n\n"
        f"This link expires in {ttl_minutes} minutes.\n\n"
        f"If you did not request a password reset, please ignore this email.\n\n"
        f"-- The WorldLeader.io Team"
    )
    return subject, html_body, text_body
