from portfolio.services.notifications import notify_admins, send_contact_email
from portfolio.services.seed import load_seed

__all__ = [
    "load_seed",
    "notify_admins",
    "send_contact_email",
]
