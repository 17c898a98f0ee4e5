# search_utils.py

import logging
from typing import List, Tuple

from azure.core.credentials import AzureKeyCredential
from azure.search.documents import SearchClient

from config_utils import HistoryConfig

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE  = 1000
DELETE_BATCH_SIZE = 1000  # service limit per indexing batch
MAX_SKIP          = 100000  # service rejects larger skip values

def get_search_client(config: HistoryConfig) -> SearchClient:
    config.require_search()
    return SearchClient(
        endpoint=config.search_endpoint,
        index_name=config.search_index_name,
        credential=AzureKeyCredential(config.search_api_key),
    )

def _odata_string(value) -> str:
    return "'" + str(value).replace("'", "''") + "'"

def find_ids_by_thread(client, chat_thread_id: str) -> List[str]:
    """Returns the ids of index entries whose chatThreadId matches.

    Stops at the service skip limit; entries beyond it are left for a later pass.
    """
    flt = f"chatThreadId eq {_odata_string(chat_thread_id)}"
    ids: List[str] = []
    skip = 0
    while True:
        page = list(client.search(
            search_text="*",
            filter=flt,
            select=["id"],
            top=SEARCH_PAGE_SIZE,
            skip=skip,
        ))
        ids.extend(r["id"] for r in page if r.get("id"))
        if len(page) < SEARCH_PAGE_SIZE:
            return ids
        skip += SEARCH_PAGE_SIZE
        if skip > MAX_SKIP:
            logger.warning(
                f"chatThreadId={chat_thread_id} has more than {MAX_SKIP} index entries, "
                f"returning the first {len(ids)}"
            )
            return ids

def delete_ids(client, ids: List[str]) -> Tuple[int, int]:
    """Deletes ids in batches. Returns (deleted, failed)."""
    deleted = failed = 0
    for i in range(0, len(ids), DELETE_BATCH_SIZE):
        batch = [{"id": key} for key in ids[i:i + DELETE_BATCH_SIZE]]
        try:
            results = client.delete_documents(documents=batch)
        except Exception as e:
            logger.error(f"delete_documents failed for {len(batch)} keys: {e}")
            failed += len(batch)
            continue
        for r in results:
            if r.succeeded:
                deleted += 1
            else:
                failed += 1
                logger.warning(f"Search delete failed for key={r.key}: {r.status_code} {r.error_message}")
    return deleted, failed
