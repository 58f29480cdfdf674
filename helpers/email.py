import asyncio
import html
import logging
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Dict, Tuple

import dotenv


dotenv.load_dotenv()

logger = logging.getLogger(__name__)

APP_NAME = os.getenv("APP_NAME", "Healthcare Platform")


class UnknownTemplate(KeyError):
    pass


def send_email(to_address: str, subject: str, message_html: str) -> bool:
    user = os.getenv("SMTP_FROM_USER")
    smtp_server = os.getenv("SMTP_SERVER")
    smtp_port_str = os.getenv("SMTP_PORT")
    from_address = os.getenv("SMTP_FROM_ADDRESS")
    password = os.getenv("SMTP_PASSWORD")

    if not all([user, smtp_server, smtp_port_str, from_address, password]):
        raise ValueError("SMTP configuration is not set properly in environment variables.")

    smtp_port = int(smtp_port_str)
    message = MIMEMultipart()
    message["From"] = f'"{user}" <{from_address}>'
    message["To"] = to_address
    message["Subject"] = subject
    message.attach(MIMEText(message_html, "html"))

    try:
        with smtplib.SMTP_SSL(smtp_server, smtp_port) as server:
            server.login(from_address, password)
            server.send_message(message)
            return True
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Failed to send email to %s: %s", to_address, e)
        return False


def _layout(title: str, body_html: str) -> str:
    return f"""\
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <title>{title}</title>
        <style>
            body {{ margin: 0; background: #eef2f7; font-family: Helvetica, Arial, sans-serif; }}
            .card {{ max-width: 560px; margin: 24px auto; background: #fff; border: 1px solid #d9e1ec; }}
            .brand {{ padding: 16px 24px; background: #0f766e; color: #fff; font-size: 18px; }}
            .content {{ padding: 24px; color: #1f2933; line-height: 1.5; }}
            .content h2 {{ margin-top: 0; color: #0f766e; }}
            .details {{ margin: 16px 0; padding: 12px 16px; background: #f0fdfa; border-left: 3px solid #0f766e; }}
            .details p {{ margin: 4px 0; }}
            .fine-print {{ padding: 12px 24px; font-size: 12px; color: #7b8794; }}
        </style>
    </head>
    <body>
        <div class="card">
            <div class="brand">{APP_NAME}</div>
            <div class="content">
                <h2>{title}</h2>
                {body_html}
            </div>
            <div class="fine-print">This is an automated message about your appointment. Please do not reply.</div>
        </div>
    </body>
    </html>
    """


def _details(v: Dict, *rows: Tuple[str, str]) -> str:
    items = "".join(
        f"<p><strong>{label}:</strong> {v[key]}</p>" for label, key in rows if v.get(key)
    )
    return f'<div class="details">{items}</div>'


_WHEN = (("Date", "appointmentDate"), ("Time", "appointmentTime"), ("Type", "appointmentType"))


def appointment_requested(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>Your appointment request with {v.get('doctorName', 'the doctor')} has been submitted.
    You will be notified once it is confirmed.</p>
    {_details(v, *_WHEN, ('Appointment ID', 'appointmentId'))}
    """
    return f"Appointment Request Submitted - {v.get('appointmentDate', '')}", "Appointment Requested", body


def new_appointment_request(v: Dict):
    body = f"""
    <p>Hello Dr. {v.get('doctorName', '')},</p>
    <p>You have a new appointment request from {v.get('patientName', '')}.</p>
    {_details(v, *_WHEN, ('Notes', 'notes'), ('Appointment ID', 'appointmentId'))}
    """
    return f"New Appointment Request from {v.get('patientName', '')}", "New Appointment Request", body


def appointment_confirmed(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>Your appointment with Dr. {v.get('doctorName', '')} has been confirmed.</p>
    {_details(v, *_WHEN, ('Video call', 'videoCallLink'))}
    """
    return f"Appointment Confirmed - {v.get('appointmentDate', '')}", "Appointment Confirmed", body


def appointment_rejected(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>Unfortunately your appointment request with Dr. {v.get('doctorName', '')} was not accepted.</p>
    {_details(v, *_WHEN, ('Reason', 'rejectionReason'))}
    """
    return f"Appointment Request Rejected - {v.get('appointmentDate', '')}", "Appointment Rejected", body


def reschedule_request_doctor(v: Dict):
    details = _details(
        v,
        ("Current date", "originalDate"),
        ("Current time", "originalTime"),
        ("Requested date", "newDate"),
        ("Requested time", "newTime"),
        ("Reason", "rescheduleReason"),
    )
    body = f"""
    <p>Hello Dr. {v.get('doctorName', '')},</p>
    <p>{v.get('patientName', '')} has asked to move their appointment.</p>
    {details}
    """
    return f"Reschedule Request from {v.get('patientName', '')}", "Reschedule Request", body


def reschedule_request_patient(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>Your reschedule request has been sent to Dr. {v.get('doctorName', '')} for approval.</p>
    {_details(v, ('Requested date', 'newDate'), ('Requested time', 'newTime'))}
    """
    return f"Reschedule Request Submitted - {v.get('appointmentDate', '')}", "Reschedule Requested", body


def reschedule_approved(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>Dr. {v.get('doctorName', '')} approved your reschedule request.</p>
    {_details(v, ('New date', 'newDate'), ('New time', 'newTime'))}
    """
    return f"Reschedule Request Approved - New Date: {v.get('newDate', '')}", "Reschedule Approved", body


def reschedule_rejected(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>Dr. {v.get('doctorName', '')} could not accept the new time. Your original appointment is kept.</p>
    {_details(v, *_WHEN, ('Reason', 'rejectionReason'))}
    """
    return f"Reschedule Request Rejected - {v.get('appointmentDate', '')}", "Reschedule Rejected", body


def appointment_canceled_by_patient(v: Dict):
    body = f"""
    <p>Hello Dr. {v.get('recipientName', '')},</p>
    <p>{v.get('cancelerName', '')} has canceled their appointment.</p>
    {_details(v, *_WHEN, ('Reason', 'cancelReason'))}
    """
    return f"Appointment Canceled by Patient - {v.get('appointmentDate', '')}", "Appointment Canceled", body


def appointment_canceled_by_doctor(v: Dict):
    body = f"""
    <p>Hello {v.get('recipientName', '')},</p>
    <p>{v.get('cancelerName', '')} has canceled your appointment.</p>
    {_details(v, *_WHEN, ('Reason', 'cancelReason'))}
    """
    return f"Appointment Canceled - {v.get('appointmentDate', '')}", "Appointment Canceled", body


def _cancellation_confirmation(v: Dict):
    body = f"""
    <p>Hello {v.get('cancelerName', '')},</p>
    <p>Your appointment with {v.get('otherPartyName', '')} has been canceled.</p>
    {_details(v, *_WHEN)}
    """
    return f"Cancellation Confirmed - {v.get('appointmentDate', '')}", "Cancellation Confirmed", body


def appointment_completed(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>Your appointment with Dr. {v.get('doctorName', '')} is complete. Thank you for visiting.</p>
    {_details(v, *_WHEN, ('Consultation notes', 'consultationNotes'), ('Prescription', 'prescription'))}
    """
    return f"Appointment Completed - {v.get('appointmentDate', '')}", "Appointment Completed", body


def appointment_reminder(v: Dict):
    body = f"""
    <p>Hello {v.get('patientName', '')},</p>
    <p>This is a reminder of your upcoming appointment with Dr. {v.get('doctorName', '')}.</p>
    {_details(v, *_WHEN, ('Video call', 'videoCallLink'))}
    """
    return f"Appointment Reminder - {v.get('appointmentDate', '')}", "Appointment Reminder", body


TEMPLATES: Dict[str, Callable[[Dict], Tuple[str, str, str]]] = {
    "appointment_requested": appointment_requested,
    "new_appointment_request": new_appointment_request,
    "appointment_confirmed": appointment_confirmed,
    "appointment_rejected": appointment_rejected,
    "reschedule_request_doctor": reschedule_request_doctor,
    "reschedule_request_patient": reschedule_request_patient,
    "reschedule_approved": reschedule_approved,
    "reschedule_rejected": reschedule_rejected,
    "appointment_canceled_by_patient": appointment_canceled_by_patient,
    "appointment_canceled_by_doctor": appointment_canceled_by_doctor,
    "cancellation_confirmation_patient": _cancellation_confirmation,
    "cancellation_confirmation_doctor": _cancellation_confirmation,
    "appointment_completed": appointment_completed,
    "appointment_reminder": appointment_reminder,
}


def render(template: str, variables: Dict) -> Tuple[str, str]:
    """Subject and HTML body for a template id."""
    if template not in TEMPLATES:
        raise UnknownTemplate(template)
    safe = {key: html.escape(str(value)) for key, value in variables.items() if value is not None}
    subject, title, body = TEMPLATES[template](safe)
    return html.unescape(subject), _layout(title, body)


class EmailGateway:
    async def send(self, to_address: str, template: str, variables: Dict) -> bool:
        subject, message_html = render(template, variables)
        return await asyncio.to_thread(send_email, to_address, subject, message_html)
