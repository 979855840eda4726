"""
Celery tasks for RBAC housekeeping.
"""
import logging
from celery import shared_task
from apps.rbac.services import InviteService

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def purge_expired_invite_tokens(self):
    """
    Delete invite tokens whose expiry has passed.
    
    Idempotent; acceptance checks expiry on its own, so a late sweep only
    costs storage.
    
    Returns:
        dict: Number of tokens deleted
    """
    deleted = InviteService.purge_expired()
    
    if deleted:
        logger.info(
            f"Purged {deleted} expired invite tokens",
            extra={'deleted': deleted}
        )
    
    return {'status': 'success', 'deleted': deleted}
