import logging

from celery import shared_task

from core import media

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(Exception,), retry_backoff=True, retry_jitter=True, retry_kwargs={'max_retries': 5})
def delete_post_media_task(self, urls):
    """Remove a deleted post's files from blob storage."""
    logger.info(f"[MEDIA CLEANUP] Removing {len(urls)} files")
    for url in urls:
        try:
            media.delete(url)
        except Exception as e:
            logger.error(f"[MEDIA CLEANUP] Failed to delete {url}: {e}", exc_info=True)
            raise self.retry(exc=e)
