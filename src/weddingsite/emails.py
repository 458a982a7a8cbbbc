"""Email bodies for the contact form and comment notifications."""

from html import escape
from typing import Optional

from weddingsite.utils import format_italian_datetime

CONTACT_SUBJECT = "Wedding Contact Form - New message from {name}"
COMMENT_SUBJECT = "Matrimonio Chiara & Simone - Nuovo commento"

_WRAPPER = """\
<div style="font-family: 'Helvetica Neue', Arial, sans-serif; line-height: 1.6; color: #555; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #fdf2f5; padding: 20px; border-radius: 8px; border: 1px solid #f5d6e0;">
    <h2 style="color: #d67a8a; margin-bottom: 15px; text-align: center; font-weight: 300;">{title}</h2>
    <div style="background: white; padding: 20px; border-radius: 5px;">
      <p style="margin-bottom: 20px;">{intro}</p>
      <table cellpadding="10" cellspacing="0" border="0" style="border-collapse: collapse; width: 100%;">
{rows}
      </table>
{extra}
    </div>
    <p style="text-align: center; margin-top: 25px; color: #999; font-size: 13px;">{footer}</p>
  </div>
</div>"""

_ROW = (
    '        <tr><td style="font-weight: bold; width: 120px; color: #d67a8a; vertical-align: top;">{label}</td>'
    '<td style="border-bottom: 1px dashed #f0c8d2; white-space: pre-line;">{value}</td></tr>'
)


def _rows(*pairs) -> str:
    return "\n".join(_ROW.format(label=label, value=value) for label, value in pairs)


def contact_subject(name: str) -> str:
    return CONTACT_SUBJECT.format(name=name)


def contact_text(
    name: str,
    surname: str,
    message: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    sent_at: Optional[str] = None,
) -> str:
    sent_at = sent_at or format_italian_datetime()
    return (
        "Nuovo Messaggio dal Sito Matrimonio\n"
        "\n"
        "Informazioni Contatto\n"
        f"- Nome: {name}\n"
        f"- Cognome: {surname}\n"
        f"- Email: {email or 'Non fornito'}\n"
        f"- Telefono: {phone or 'Non fornito'}\n"
        "\n"
        "Messaggio:\n"
        f"{message}\n"
        "\n"
        "Questo messaggio è stato inviato tramite il modulo di contatto del vostro sito matrimonio.\n"
        f"Data: {sent_at}"
    )


def contact_html(
    name: str,
    surname: str,
    message: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    sent_at: Optional[str] = None,
) -> str:
    sent_at = sent_at or format_italian_datetime()
    if email:
        email_cell = f'<a href="mailto:{escape(email)}" style="color: #d67a8a; text-decoration: none;">{escape(email)}</a>'
    else:
        email_cell = "-"
    return _WRAPPER.format(
        title="Nuovo Messaggio dal Sito Matrimonio",
        intro="Hai ricevuto un nuovo messaggio dal modulo di contatto:",
        rows=_rows(
            ("Nome", escape(name)),
            ("Cognome", escape(surname)),
            ("Email", email_cell),
            ("Telefono", escape(phone) if phone else "-"),
            ("Messaggio", escape(message)),
        ),
        extra="",
        footer=(
            "Questo messaggio è stato inviato dal modulo di contatto del vostro sito matrimonio.<br>"
            f"Data: {escape(sent_at)}"
        ),
    )


def comment_notification_text(
    author_name: str,
    content: str,
    created_at: str,
    unsubscribe_link: str,
    photo_link: str,
) -> str:
    return (
        "Ciao,\n"
        "\n"
        "È stato pubblicato un nuovo commento su una foto a cui sei iscritto.\n"
        "\n"
        f"Autore: {author_name}\n"
        "Commento:\n"
        f"{content}\n"
        f"Data: {created_at}\n"
        "\n"
        f"Puoi vedere la foto qui: {photo_link}\n"
        "\n"
        "Ricevi questa email perché ti sei iscritto per ricevere notifiche sui nuovi commenti di questa foto.\n"
        f"Se non vuoi più riceverle, puoi disiscriverti qui: {unsubscribe_link}"
    )


def comment_notification_html(
    author_name: str,
    content: str,
    created_at: str,
    unsubscribe_link: str,
    photo_link: str,
) -> str:
    button = (
        '      <div style="text-align: center; margin-top: 25px;">\n'
        f'        <a href="{escape(photo_link)}" style="background-color: #d67a8a; color: #fff; padding: 12px 20px; '
        'border-radius: 5px; text-decoration: none; font-weight: bold; display: inline-block;">Vai alla foto</a>\n'
        "      </div>"
    )
    return _WRAPPER.format(
        title="Nuovo commento su una foto che segui",
        intro="Ciao,<br>è stato pubblicato un nuovo commento su una foto a cui sei iscritto.",
        rows=_rows(
            ("Autore", escape(author_name)),
            ("Commento", escape(content)),
            ("Data", escape(created_at)),
        ),
        extra=button,
        footer=(
            "Ricevi questa email perché ti sei iscritto per ricevere notifiche sui nuovi commenti di questa foto.<br>"
            f'Se non vuoi più riceverle, puoi <a href="{escape(unsubscribe_link)}" '
            'style="color: #d67a8a; text-decoration: none;">disiscriverti qui</a>.'
        ),
    )
