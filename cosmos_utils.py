# cosmos_utils.py

import logging
from typing import List, Dict, Any

from azure.cosmos import CosmosClient
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from config_utils import HistoryConfig

logger = logging.getLogger(__name__)

CHAT_THREAD   = "CHAT_THREAD"
CHAT_DOCUMENT = "CHAT_DOCUMENT"

# absent and null both mean "not deleted"
_NOT_DELETED = "(NOT IS_DEFINED(c.isDeleted) OR IS_NULL(c.isDeleted) OR c.isDeleted = false)"

STALE_THREADS_QUERY = (
    "SELECT * FROM c WHERE c.type = @type AND c._ts < @ts AND " + _NOT_DELETED
)
RELATED_DOCS_QUERY = (
    "SELECT * FROM c WHERE (c.chatThreadId = @id OR c.threadId = @id) AND c.id != @id AND " + _NOT_DELETED
)
STALE_DOCS_QUERY = (
    "SELECT * FROM c WHERE c._ts < @ts AND " + _NOT_DELETED
)

def get_container(config: HistoryConfig):
    config.require_database()
    client = CosmosClient.from_connection_string(config.db_connection_string)
    database = client.get_database_client(config.database_name)
    return database.get_container_client(config.container_name)

# ---------- Queries (failures propagate) ----------

def _query(container, query: str, parameters: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return list(container.query_items(
        query=query,
        parameters=parameters,
        enable_cross_partition_query=True,
    ))

def get_stale_threads(container, cutoff: int) -> List[Dict[str, Any]]:
    return _query(container, STALE_THREADS_QUERY, [
        {"name": "@type", "value": CHAT_THREAD},
        {"name": "@ts", "value": cutoff},
    ])

def get_related_docs(container, thread_id: str) -> List[Dict[str, Any]]:
    return _query(container, RELATED_DOCS_QUERY, [{"name": "@id", "value": thread_id}])

def get_stale_docs(container, cutoff: int) -> List[Dict[str, Any]]:
    return _query(container, STALE_DOCS_QUERY, [{"name": "@ts", "value": cutoff}])

# ---------- Writes (failures are logged per item) ----------

def mark_deleted(container, doc: Dict[str, Any]) -> bool:
    """Replaces the stored record with isDeleted=true. Returns False on failure."""
    body = dict(doc)
    body["isDeleted"] = True
    try:
        container.replace_item(item=body["id"], body=body)
        return True
    except Exception as e:
        logger.error(f"mark_deleted(id={doc.get('id')}) failed: {e}")
        return False

def delete_document(container, doc: Dict[str, Any]) -> bool:
    """Hard delete by (id, userId). A record that is already gone counts as deleted."""
    doc_id, user_id = doc.get("id"), doc.get("userId")
    try:
        container.delete_item(item=doc_id, partition_key=user_id)
        return True
    except CosmosResourceNotFoundError:
        logger.info("Document already gone: id=%s, userId=%s", doc_id, user_id)
        return True
    except Exception as e:
        logger.error(f"delete_document(id={doc_id}, userId={user_id}) failed: {e}")
        return False
