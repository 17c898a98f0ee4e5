import pytest

from config_utils import HistoryConfig


@pytest.fixture
def config():
    return HistoryConfig(
        search_endpoint_name="chatsearch",
        search_api_key="key",
        search_index_name="chat-index",
        db_connection_string="AccountEndpoint=https://localhost:8081/;AccountKey=a2V5;",
        retention_days=30,
    )
