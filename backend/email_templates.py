from html import escape
from typing import Dict, Iterable, Tuple

SIGNATURE_TEXT = "Regards,\nSigaram 2025 Organising Committee\n"
SIGNATURE_HTML = "<p style=\"margin-bottom: 0;\">Regards,<br><strong>Sigaram 2025 Organising Committee</strong></p>"


def _wrap_html(title: str, body: str) -> str:
    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #1b1f24;">
        <div style="max-width: 560px; margin: 0 auto; padding: 24px; border: 1px solid #e6e6e6; border-radius: 12px;">
          <h2 style="margin-top: 0;">{escape(title)}</h2>
          {body}
          <hr style="border: none; border-top: 1px solid #e6e6e6; margin: 24px 0;" />
          {SIGNATURE_HTML}
        </div>
      </body>
    </html>
    """


def build_otp_email(code: str, validity_minutes: int = 5) -> Tuple[str, str, str]:
    subject = "Your Sigaram 2025 login code"
    text = (
        "Hello,\n\n"
        f"Your one-time login code is {code}.\n"
        f"It expires in {validity_minutes} minutes.\n\n"
        "If you did not try to sign in, change your password immediately.\n\n"
        + SIGNATURE_TEXT
    )
    body = f"""
          <p>Hello,</p>
          <p>Your one-time login code is:</p>
          <p style="text-align: center; font-size: 28px; letter-spacing: 6px; margin: 24px 0;"><strong>{escape(code)}</strong></p>
          <p>It expires in <strong>{validity_minutes} minutes</strong>.</p>
          <p>If you did not try to sign in, change your password immediately.</p>
    """
    return subject, _wrap_html("Login verification", body), text


def build_credentials_email(full_name: str, email: str, password: str, role: str) -> Tuple[str, str, str]:
    subject = f"Your Sigaram 2025 {role} account"
    text = (
        f"Hello {full_name},\n\n"
        f"A {role} account has been created for you.\n"
        f"Email: {email}\nPassword: {password}\n\n"
        "Please change your password after the first login.\n\n"
        + SIGNATURE_TEXT
    )
    body = f"""
          <p>Hello {escape(full_name)},</p>
          <p>A <strong>{escape(role)}</strong> account has been created for you.</p>
          <p>Email: <strong>{escape(email)}</strong><br>Password: <strong>{escape(password)}</strong></p>
          <p>Please change your password after the first login.</p>
    """
    return subject, _wrap_html("Account created", body), text


def _field_rows(fields: Iterable[Tuple[str, str]]) -> Tuple[str, str]:
    text_lines = []
    html_rows = []
    for label, value in fields:
        value = value or "-"
        text_lines.append(f"{label}: {value}")
        html_rows.append(f"<tr><td style=\"padding:4px 12px 4px 0;\"><strong>{escape(label)}</strong></td><td>{escape(str(value))}</td></tr>")
    return "\n".join(text_lines), "<table>" + "".join(html_rows) + "</table>"


def build_contact_notification(name: str, email: str, phone: str, subject_line: str, message: str) -> Tuple[str, str, str]:
    subject = f"New contact message: {subject_line or 'No subject'}"
    fields_text, fields_html = _field_rows([("Name", name), ("Email", email), ("Phone", phone), ("Subject", subject_line)])
    text = f"{fields_text}\n\n{message}\n"
    body = f"{fields_html}<p style=\"white-space: pre-wrap;\">{escape(message)}</p>"
    return subject, _wrap_html("New contact message", body), text


def build_membership_notification(membership_type: str, doctors: Iterable[Dict[str, str]], address: str) -> Tuple[str, str, str]:
    subject = f"New membership application ({membership_type})"
    fields = [("Membership type", membership_type), ("Address", address)]
    for index, doctor in enumerate(doctors, start=1):
        fields.append((f"Doctor {index}", doctor.get("name") or ""))
        fields.append((f"Doctor {index} registration", doctor.get("registration_number") or ""))
        fields.append((f"Doctor {index} email", doctor.get("email") or ""))
        fields.append((f"Doctor {index} phone", doctor.get("phone") or ""))
        fields.append((f"Doctor {index} photo", doctor.get("photo_url") or ""))
    fields_text, fields_html = _field_rows(fields)
    return subject, _wrap_html("New membership application", fields_html), fields_text + "\n"
