"""
Tests for the technicians API endpoints (/technicians).
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from tests.factories import TechnicianFactory
from workshop.models.job import JobTechnician
from workshop.models.notification import Notification

TECHNICIANS_PREFIX = "/technicians"


async def notification_messages(db) -> list:
    result = await db.execute(select(Notification.message).order_by(Notification.id.asc()))
    return list(result.scalars().all())


class TestCreateTechnician:
    """Tests for POST /technicians."""

    @pytest.mark.asyncio
    async def test_create_announces_technician(self, client: AsyncClient, test_db, notifier):
        response = await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory(name="Kamal Fernando"))
        await notifier.drain()

        assert response.status_code == 201, response.text
        assert response.json()["status"] == "Active"
        assert await notification_messages(test_db) == ["Technician Kamal Fernando added (status: Active)."]

    @pytest.mark.asyncio
    async def test_invalid_status(self, client: AsyncClient):
        response = await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory(status="Retired"))

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid technician status"

    @pytest.mark.asyncio
    async def test_name_required(self, client: AsyncClient):
        response = await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory(name=""))

        assert response.status_code == 400


class TestUpdateTechnician:
    """Tests for PUT /technicians/{id}."""

    @pytest.mark.asyncio
    async def test_update_lists_changes(self, client: AsyncClient, test_db, notifier):
        created = (await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory(name="Ruwan"))).json()
        await notifier.drain()

        response = await client.put(
            f"{TECHNICIANS_PREFIX}/{created['id']}",
            json={"status": "On Leave", "phone": "0770000000"},
        )
        await notifier.drain()

        assert response.status_code == 200
        assert (await notification_messages(test_db))[-1] == (
            "Technician Ruwan: contact set to 0770000000, status changed from Active to On Leave."
        )

    @pytest.mark.asyncio
    async def test_no_change_no_notification(self, client: AsyncClient, notifier):
        created = (await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory(name="Ruwan"))).json()
        await notifier.drain()

        await client.put(f"{TECHNICIANS_PREFIX}/{created['id']}", json={"name": "Ruwan"})

        assert notifier.pending == 0


class TestDeleteTechnician:
    """Tests for DELETE /technicians/{id}."""

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, test_db, notifier):
        created = (await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory(name="Saman"))).json()

        response = await client.delete(f"{TECHNICIANS_PREFIX}/{created['id']}")
        await notifier.drain()

        assert response.status_code == 200
        assert (await notification_messages(test_db))[-1] == "Technician Saman has been removed from the roster."

    @pytest.mark.asyncio
    async def test_assigned_technician_is_refused(self, client: AsyncClient, test_db, make_job):
        created = (await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory())).json()
        job = await make_job(job_status="Pending")
        test_db.add(JobTechnician(job_id=job.id, technician_id=created["id"]))
        await test_db.commit()

        response = await client.delete(f"{TECHNICIANS_PREFIX}/{created['id']}")

        assert response.status_code == 409


class TestTechnicianJobs:
    """Tests for GET /technicians/{id}/jobs."""

    @pytest.mark.asyncio
    async def test_open_jobs_by_default(self, client: AsyncClient, test_db, vehicle, make_job):
        created = (await client.post(TECHNICIANS_PREFIX, json=TechnicianFactory())).json()
        open_job = await make_job(job_status="In Progress", vehicle_id=vehicle.id)
        done_job = await make_job(job_status="Completed")
        for job in (open_job, done_job):
            test_db.add(JobTechnician(job_id=job.id, technician_id=created["id"]))
        await test_db.commit()

        open_only = (await client.get(f"{TECHNICIANS_PREFIX}/{created['id']}/jobs")).json()
        everything = (
            await client.get(f"{TECHNICIANS_PREFIX}/{created['id']}/jobs", params={"include_completed": "true"})
        ).json()

        assert [j["id"] for j in open_only] == [open_job.id]
        assert open_only[0]["vehicle_name"] == "Toyota Axio"
        assert open_only[0]["customer_name"] == "Nimal Perera"
        assert {j["id"] for j in everything} == {open_job.id, done_job.id}
