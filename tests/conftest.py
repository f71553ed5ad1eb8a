"""
Shared fixtures: test environment, temporary database and stored rows
"""
import os

# Settings are read lazily, but must be present before anything calls get_settings()
os.environ["LLM_API_KEY"] = "test-llm-key"
os.environ["PERSISTENCE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["PERSISTENCE_KEY"] = "test-persistence-key"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("EMAIL_PROVIDER_KEY", None)
os.environ.pop("BREVO_REPORT_TEMPLATE_ID", None)

import pytest
import pytest_asyncio

from app.database import DatabaseManager
from app.models import Analysis
from tests.factories import CATEGORY_SCORES, make_category_block


@pytest.fixture
def valid_idea():
    return {
        "idea_name": "InvoiceNudge",
        "problem_statement": "Freelancers lose hours every week chasing late invoice payments.",
        "target_audience": "Independent designers and developers billing several clients",
        "unique_value_proposition": "Polite, automatic payment reminders that adapt to each client.",
        "product_description": "A web app that connects to your invoicing tool and sends escalating reminders.",
    }


@pytest_asyncio.fixture
async def database(tmp_path):
    """Fresh file-backed SQLite database per test"""
    manager = DatabaseManager(database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await manager.initialize()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def session(database):
    async with database.async_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def stored_analysis(database):
    """An analysis row without a generated report"""
    analysis = Analysis(
        idea_name="InvoiceNudge",
        problem_statement="Freelancers lose hours every week chasing late invoice payments.",
        target_audience="Independent designers and developers billing several clients",
        unique_value_proposition="Polite, automatic payment reminders that adapt to each client.",
        product_description="A web app that connects to your invoicing tool and sends escalating reminders.",
        total_score=68,
        validation_status="NEEDS REFINEMENT",
        critical_issues=[{"issue": "Crowded invoicing market", "recommendation": "Differentiate."}],
        **{name: make_category_block(score) for name, score in CATEGORY_SCORES.items()},
    )
    async with database.get_session() as session:
        session.add(analysis)
    return analysis
