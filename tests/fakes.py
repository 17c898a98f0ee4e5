import copy

from azure.cosmos.exceptions import CosmosHttpResponseError, CosmosResourceNotFoundError

import cosmos_utils


def _not_deleted(doc):
    return doc.get("isDeleted") in (None, False)


class FakeContainer:
    """In-memory container that understands the queries cosmos_utils issues."""

    def __init__(self, docs=None):
        self.docs = {}
        for d in docs or []:
            self.docs[(d["id"], d.get("userId"))] = copy.deepcopy(d)
        self.fail_replace = set()
        self.fail_delete = set()
        self.queries = []
        self.replaced = []
        self.deleted = []

    def get(self, doc_id):
        for (i, _), d in self.docs.items():
            if i == doc_id:
                return d
        return None

    def query_items(self, query, parameters=None, enable_cross_partition_query=False):
        params = {p["name"]: p["value"] for p in parameters or []}
        self.queries.append((query, params))
        docs = list(self.docs.values())
        if query == cosmos_utils.STALE_THREADS_QUERY:
            hits = [d for d in docs if d.get("type") == params["@type"]
                    and d["_ts"] < params["@ts"] and _not_deleted(d)]
        elif query == cosmos_utils.RELATED_DOCS_QUERY:
            tid = params["@id"]
            hits = [d for d in docs if (d.get("chatThreadId") == tid or d.get("threadId") == tid)
                    and d["id"] != tid and _not_deleted(d)]
        elif query == cosmos_utils.STALE_DOCS_QUERY:
            hits = [d for d in docs if d["_ts"] < params["@ts"] and _not_deleted(d)]
        else:
            raise AssertionError(f"unexpected query: {query}")
        return iter([copy.deepcopy(d) for d in hits])

    def replace_item(self, item, body):
        if item in self.fail_replace:
            raise CosmosHttpResponseError(status_code=503, message="service unavailable")
        key = (item, body.get("userId"))
        if key not in self.docs:
            raise CosmosResourceNotFoundError(status_code=404, message="not found")
        self.docs[key] = copy.deepcopy(body)
        self.replaced.append(item)
        return body

    def delete_item(self, item, partition_key):
        if item in self.fail_delete:
            raise CosmosHttpResponseError(status_code=503, message="service unavailable")
        key = (item, partition_key)
        if key not in self.docs:
            raise CosmosResourceNotFoundError(status_code=404, message="not found")
        del self.docs[key]
        self.deleted.append(item)


class FakeIndexingResult:
    def __init__(self, key, succeeded, status_code=200, error_message=None):
        self.key = key
        self.succeeded = succeeded
        self.status_code = status_code
        self.error_message = error_message


class FakeSearchClient:
    """Index entries keyed by id, filterable on chatThreadId."""

    def __init__(self, entries=None):
        self.entries = {e["id"]: dict(e) for e in entries or []}
        self.fail_keys = set()
        self.raise_on_delete = False
        self.searches = []
        self.delete_batches = []

    def search(self, search_text=None, filter=None, select=None, top=None, skip=None):
        self.searches.append({"filter": filter, "select": select, "top": top, "skip": skip})
        prefix = "chatThreadId eq '"
        assert filter.startswith(prefix) and filter.endswith("'")
        value = filter[len(prefix):-1].replace("''", "'")
        hits = [{"id": e["id"]} for e in self.entries.values() if e.get("chatThreadId") == value]
        start = skip or 0
        end = start + top if top else None
        return iter(hits[start:end])

    def delete_documents(self, documents):
        self.delete_batches.append([d["id"] for d in documents])
        if self.raise_on_delete:
            raise RuntimeError("index unavailable")
        results = []
        for d in documents:
            if d["id"] in self.fail_keys:
                results.append(FakeIndexingResult(d["id"], False, 500, "boom"))
            else:
                self.entries.pop(d["id"], None)
                results.append(FakeIndexingResult(d["id"], True))
        return results
