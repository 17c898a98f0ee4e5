# deletedocs_function.py

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

import azure.functions as func

from config_utils import ConfigError, HistoryConfig
from cosmos_utils import CHAT_DOCUMENT, get_container, delete_document
from search_utils import get_search_client, find_ids_by_thread, delete_ids

logger = logging.getLogger()
logger.setLevel(logging.INFO)

@dataclass
class ChangeResult:
    received: int = 0
    deleted_candidates: int = 0
    search_entries_deleted: int = 0
    documents_deleted: int = 0
    failures: int = 0
    kept: int = 0
    skipped: bool = False

def _is_deleted(doc: Dict[str, Any]) -> bool:
    return doc.get("isDeleted") is True

def _thread_ids_to_purge(deleted: List[Dict[str, Any]]) -> List[str]:
    seen: List[str] = []
    for doc in deleted:
        if doc.get("type") != CHAT_DOCUMENT:
            continue
        thread_id = doc.get("chatThreadId")
        if not thread_id:
            logger.warning("Deleted CHAT_DOCUMENT id=%s has no chatThreadId, skipping search cleanup", doc.get("id"))
            continue
        if thread_id not in seen:
            seen.append(thread_id)
    return seen

def handle_changes(
    documents: Iterable[Any],
    config: HistoryConfig,
    *,
    container=None,
    search_client=None,
) -> ChangeResult:
    """Cascades soft deletes from the change feed into the search index and the store.

    Search entries are removed for every thread referenced by a deleted
    CHAT_DOCUMENT, then every deleted record is hard-deleted by (id, userId).
    Missing search settings leave the batch untouched; a missing store
    connection only skips the hard deletes. Records whose thread still has
    search entries that failed to delete are kept so a later change retries.
    """
    docs = [dict(d) for d in (documents or [])]
    logger.info("Processing %d documents.", len(docs))
    result = ChangeResult(received=len(docs))

    deleted = [d for d in docs if _is_deleted(d)]
    result.deleted_candidates = len(deleted)
    if not deleted:
        logger.info("No documents flagged isDeleted=true")
        return result

    thread_ids = _thread_ids_to_purge(deleted)
    if thread_ids and search_client is None:
        try:
            search_client = get_search_client(config)
        except ConfigError as e:
            logger.error("Skipping batch of %d documents: %s", len(docs), e)
            result.skipped = True
            return result

    unpurged: List[str] = []
    for thread_id in thread_ids:
        logger.info("Deleting all search index docs with chatThreadId: %s", thread_id)
        ids = find_ids_by_thread(search_client, thread_id)
        if not ids:
            logger.info("No documents found in search index for chatThreadId: %s", thread_id)
            continue
        ok, failed = delete_ids(search_client, ids)
        result.search_entries_deleted += ok
        result.failures += failed
        if failed:
            unpurged.append(thread_id)
        logger.info("Deleted %d of %d documents from search index for chatThreadId: %s", ok, len(ids), thread_id)

    if container is None:
        try:
            container = get_container(config)
        except ConfigError as e:
            logger.error("Skipping store deletes for %d documents: %s", len(deleted), e)
            result.skipped = True
            return result

    to_delete = deleted
    if unpurged:
        kept = [d for d in deleted if d.get("type") == CHAT_DOCUMENT and d.get("chatThreadId") in unpurged]
        to_delete = [d for d in deleted if d not in kept]
        result.kept = len(kept)
        logger.warning(
            "Keeping %d documents in store, search cleanup incomplete for chatThreadIds %s: ids=%s",
            len(kept), unpurged, [d.get("id") for d in kept],
        )

    for doc in to_delete:
        if delete_document(container, doc):
            result.documents_deleted += 1
            logger.info("Deleted document from store: id=%s, userId=%s", doc.get("id"), doc.get("userId"))
        else:
            result.failures += 1

    logger.info(
        "deletedocs done: received=%d deleted=%d kept=%d search=%d failures=%d",
        result.received, result.documents_deleted, result.kept, result.search_entries_deleted, result.failures,
    )
    return result

def build_blueprint(config: HistoryConfig) -> func.Blueprint:
    bp = func.Blueprint()

    @bp.function_name(name="deletedocs")
    @bp.cosmos_db_trigger(
        arg_name="documents",
        connection="DOCUMENTDB",
        database_name=config.database_name,
        container_name=config.container_name,
        lease_container_name=config.lease_container_name,
        create_lease_container_if_not_exists=True,
    )
    def deletedocs(documents: func.DocumentList) -> None:
        handle_changes(documents, config)

    return bp
