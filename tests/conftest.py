import pytest

from sample_tree import build_sample_tree, missing_config
from veinslog.api import create_app
from veinslog.ingest import IngestionEngine
from veinslog.validator import EventValidator


@pytest.fixture
def config(tmp_path):
    return build_sample_tree(tmp_path)


@pytest.fixture
def empty_config(tmp_path):
    return missing_config(tmp_path)


@pytest.fixture
def engine(config):
    return IngestionEngine(config)


@pytest.fixture
def validator():
    return EventValidator()


@pytest.fixture
def app(config):
    """Create a Flask test app over the sample tree."""
    application = create_app(config)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Create a Flask test client."""
    return app.test_client()
