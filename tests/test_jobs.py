from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from app.database import async_session_factory
from app.jobs import get_job_status, purge_expired_otps_job, shutdown_scheduler, start_scheduler
from app.models.otp import PhoneOTP


async def test_scheduler_registers_otp_cleanup():
    start_scheduler()
    try:
        jobs = get_job_status()
    finally:
        shutdown_scheduler()

    assert [job["id"] for job in jobs] == ["purge_expired_otps"]
    assert jobs[0]["next_run_time"] is not None


async def test_otp_cleanup_job_commits():
    async with async_session_factory() as session:
        session.add(PhoneOTP(
            phone="9876543210",
            otp_hash="0" * 64,
            purpose="VERIFY_PHONE",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
            max_attempts=3,
        ))
        await session.commit()

    assert await purge_expired_otps_job() == 1

    async with async_session_factory() as session:
        count = (await session.execute(select(func.count(PhoneOTP.id)))).scalar()
    assert count == 0


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "connected"
