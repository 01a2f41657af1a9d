from fastapi import APIRouter, Depends

from portfolio.auth import get_storage
from portfolio.schemas import ContactCreate, ContactSubmitted
from portfolio.services.notifications import send_contact_email
from portfolio.storage import Storage

router = APIRouter()


@router.post("", response_model=ContactSubmitted)
async def submit_contact(
    body: ContactCreate,
    storage: Storage = Depends(get_storage),
):
    contact = await storage.create_contact(body)
    send_contact_email(contact)
    return ContactSubmitted(
        message="Mensagem enviada com sucesso! Entrarei em contato em breve.",
        id=contact.id,
    )
