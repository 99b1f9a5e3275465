"""
HTTP tests for the plan API — in-memory SQLite, seed catalog.
"""

from pathlib import Path

import httpx
import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from skinplan.catalog import load_snapshot
from skinplan.database import Base, get_db
from skinplan import main
from skinplan.main import app, get_snapshot
from skinplan.models.db import ProductReplacement
from skinplan.repository import PlanRepository, plan_from_record
from skinplan.services.plan_service import PlanService

DATA_DIR = Path(__file__).parent.parent / "data"
SNAPSHOT = load_snapshot(DATA_DIR / "rules.json", DATA_DIR / "products.json")


# ── Fixtures ────────────────────────────────────────────────────────────────


def _profile(**overrides) -> dict:
    defaults = dict(
        id="profile-1",
        version=1,
        user_id="user-1",
        skin_type="oily",
        sensitivity_level="medium",
        acne_level=3,
        age_group="18_25",
        concerns=["acne", "pores"],
    )
    defaults.update(overrides)
    return defaults


@pytest.fixture
async def sessionmaker():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def client(sessionmaker):
    async def override_get_db():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_snapshot] = lambda: SNAPSHOT

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Tests ───────────────────────────────────────────────────────────────────


class TestHealth:
    @pytest.mark.anyio
    async def test_health(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestGenerate:
    @pytest.mark.anyio
    async def test_generate_plan(self, client):
        response = await client.post("/plan/generate", json={"profile": _profile()})

        assert response.status_code == 200
        body = response.json()
        assert body["rule_name"] == "Oily skin + acne 18-30"
        assert len(body["days"]) == 28
        assert body["days"][0]["phase"] == "adaptation"

    @pytest.mark.anyio
    async def test_one_plan_per_profile_version(self, client, sessionmaker):
        first = await client.post("/plan/generate", json={"profile": _profile()})
        second = await client.post("/plan/generate", json={"profile": _profile(acne_level=0)})

        # Same version returns the stored plan, even though the payload changed
        assert second.json() == first.json()

        third = await client.post("/plan/generate", json={"profile": _profile(version=2, acne_level=0)})
        assert third.json()["rule_name"] == "Oily skin (base care)"

        async with sessionmaker() as db:
            latest = await PlanRepository().get_for_profile(db, "profile-1")
            assert latest.profile_version == 2

    @pytest.mark.anyio
    async def test_missing_skin_type_is_422(self, client):
        response = await client.post("/plan/generate", json={"profile": _profile(skin_type=None)})

        assert response.status_code == 422
        assert response.json()["detail"]["kind"] == "invalid_profile"

    @pytest.mark.anyio
    async def test_malformed_profile_is_422(self, client):
        response = await client.post("/plan/generate", json={"profile": _profile(acne_level=9)})
        assert response.status_code == 422


class TestGetPlan:
    @pytest.mark.anyio
    async def test_get_stored_plan(self, client):
        generated = await client.post("/plan/generate", json={"profile": _profile()})

        response = await client.get("/plan/profile-1")

        assert response.status_code == 200
        assert response.json() == generated.json()

    @pytest.mark.anyio
    async def test_get_specific_version(self, client):
        await client.post("/plan/generate", json={"profile": _profile()})
        await client.post("/plan/generate", json={"profile": _profile(version=2, acne_level=0)})

        response = await client.get("/plan/profile-1", params={"version": 1})

        assert response.json()["profile_version"] == 1
        assert response.json()["rule_name"] == "Oily skin + acne 18-30"

    @pytest.mark.anyio
    async def test_unknown_profile_is_404(self, client):
        response = await client.get("/plan/nobody")

        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "plan_not_found"


class TestReplaceProduct:
    @pytest.mark.anyio
    async def test_replace_and_persist(self, client, sessionmaker):
        await client.post("/plan/generate", json={"profile": _profile()})

        response = await client.post(
            "/plan/replace-product",
            json={"profile_id": "profile-1", "old_product_id": 601, "new_product_id": 603},
        )

        assert response.status_code == 200
        spf = next(s for s in response.json()["resolved_steps"] if s["step"] == "spf")
        assert spf["product_ids"] == [603]

        stored = (await client.get("/plan/profile-1")).json()
        morning_ids = [i["product_id"] for i in stored["days"][0]["morning"]]
        assert 601 not in morning_ids
        assert 603 in morning_ids

        async with sessionmaker() as db:
            record = await PlanRepository().get_for_profile(db, "profile-1", 1)
            log = await PlanRepository().get_replacements(db, record.id)
            assert [(e.old_product_id, e.new_product_id) for e in log] == [(601, 603)]
            assert isinstance(log[0], ProductReplacement)

    @pytest.mark.anyio
    async def test_unpublished_target_is_404(self, client):
        await client.post("/plan/generate", json={"profile": _profile()})

        response = await client.post(
            "/plan/replace-product",
            json={"profile_id": "profile-1", "old_product_id": 101, "new_product_id": 106},
        )

        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "unknown_product"

    @pytest.mark.anyio
    async def test_product_not_in_plan_is_404(self, client):
        await client.post("/plan/generate", json={"profile": _profile()})

        response = await client.post(
            "/plan/replace-product",
            json={"profile_id": "profile-1", "old_product_id": 702, "new_product_id": 603},
        )

        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_replace_without_plan_is_404(self, client):
        response = await client.post(
            "/plan/replace-product",
            json={"profile_id": "nobody", "old_product_id": 601, "new_product_id": 603},
        )

        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "plan_not_found"


class FailingAuditRepository(PlanRepository):
    """Audit row without a plan id, so the commit hits the NOT NULL constraint."""

    async def log_replacement(self, db, plan_id, old_product_id, new_product_id, user_id=None, commit=True):
        await super().log_replacement(db, None, old_product_id, new_product_id, user_id, commit=commit)


class TestReplaceAtomicity:
    @pytest.mark.anyio
    async def test_failed_audit_leaves_plan_unchanged(self, client, sessionmaker):
        await client.post("/plan/generate", json={"profile": _profile()})
        service = PlanService(SNAPSHOT, repo=FailingAuditRepository())

        async with sessionmaker() as db:
            with pytest.raises(IntegrityError):
                await service.replace_product(db, "profile-1", 601, 603)

        async with sessionmaker() as db:
            record = await PlanRepository().get_for_profile(db, "profile-1", 1)
            spf = next(s for s in plan_from_record(record).resolved_steps if s.step.value == "spf")
            assert spf.product_ids == [601]
            assert await PlanRepository().get_replacements(db, record.id) == []

    @pytest.mark.anyio
    async def test_plan_and_audit_committed_together(self, client, sessionmaker):
        await client.post("/plan/generate", json={"profile": _profile()})
        service = PlanService(SNAPSHOT)

        async with sessionmaker() as db:
            updated = await service.replace_product(db, "profile-1", 601, 603)

        async with sessionmaker() as db:
            record = await PlanRepository().get_for_profile(db, "profile-1", 1)
            stored = plan_from_record(record)
            assert stored.resolved_steps == updated.resolved_steps
            assert stored.days == updated.days
            log = await PlanRepository().get_replacements(db, record.id)
            assert [(e.old_product_id, e.new_product_id) for e in log] == [(601, 603)]


class TestDailyTip:
    @pytest.mark.anyio
    async def test_default_tip_without_model(self, client, monkeypatch):
        monkeypatch.setattr(main.settings, "claude_api_key", None)
        await client.post("/plan/generate", json={"profile": _profile()})

        response = await client.post("/plan/daily-tip", json={"profile_id": "profile-1", "day": 2})

        assert response.status_code == 200
        assert response.json()["source"] == "default"
        assert response.json()["day"] == 2

    @pytest.mark.anyio
    async def test_tip_for_unknown_profile_is_404(self, client):
        response = await client.post("/plan/daily-tip", json={"profile_id": "nobody", "day": 2})
        assert response.status_code == 404
