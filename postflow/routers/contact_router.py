# postflow/routers/contact_router.py
import html

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession
import structlog

from ..config import Settings
from ..dependencies.app_state import get_mailer, get_settings
from ..dependencies.db import get_session_dep
from ..infrastructure.backoffice_repo import ContactRepository
from ..infrastructure.email import Mailer
from ..schemas.backoffice_schema import ContactRequest

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/contact", tags=["contact"])

SUPPORT_FEATURES = [
    {"icon": "MessageSquare", "title": "Live Chat", "description": "Get instant help from our support team via live chat."},
    {"icon": "Clock", "title": "Quick Response", "description": "We respond to all inquiries within 24 hours."},
    {"icon": "Headphones", "title": "24/7 Support", "description": "Our team is available around the clock for urgent issues."},
]


@router.post("")
async def submit_contact(
    body: ContactRequest,
    session: AsyncSession = Depends(get_session_dep),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    email = body.email.lower()
    submission = await ContactRepository(session).add(body.name, email, body.subject, body.message)
    logger.info("contact_submitted", submission_id=submission.id, email=email)

    plain = f"New contact form submission\n\nName: {body.name}\nEmail: {email}\nSubject: {body.subject}\n\n{body.message}"
    markup = (
        "<h2>New Contact Form Submission</h2>"
        f"<p><strong>Name:</strong> {html.escape(body.name)}</p>"
        f"<p><strong>Email:</strong> {html.escape(email)}</p>"
        f"<p><strong>Subject:</strong> {html.escape(body.subject)}</p>"
        f"<p>{html.escape(body.message).replace(chr(10), '<br>')}</p>"
    )
    try:
        await mailer.send(
            to_email=settings.support_email,
            subject=f"Contact Form: {body.subject}",
            plain_text=plain,
            html=markup,
            reply_to=email,
        )
    except Exception as e:
        # the submission is stored; mail delivery is best effort
        logger.warning("contact_email_failed", submission_id=submission.id, error=str(e))

    return {"message": "Thank you for contacting us! We'll get back to you soon."}


@router.get("/info")
async def contact_info(settings: Settings = Depends(get_settings)):
    return {"email": settings.support_email, "supportFeatures": SUPPORT_FEATURES}
