from flask_mail import Message
from bookshop.extensions import mail


def send_email(subject, recipients, body, attachments=None, sender=None):
    """
    Send a UTF-8 plain text e-mail with optional attachments.
    Flask-Mail builds the MIME parts and charset itself.
    """
    if isinstance(recipients, str):
        recipients = [recipients]

    msg = Message(
        subject=subject or "",
        recipients=list(recipients or []),
        body=body or "",
        sender=sender,
    )
    msg.charset = "utf-8"

    for att in attachments or []:
        if not isinstance(att, dict):
            continue
        data = att.get("content", att.get("data"))
        if data is None:
            continue
        msg.attach(
            filename=att.get("filename") or "attachment",
            content_type=att.get("mimetype") or att.get("content_type") or "application/octet-stream",
            data=data,
        )

    mail.send(msg)
    return msg
