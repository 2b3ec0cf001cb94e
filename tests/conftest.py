"""Shared test fixtures and configuration."""

import asyncio
import os
import time

# Settings are read at import time
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RETRY_BASE_DELAY_MS", "0")

from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from rq.job import JobStatus as RQJobStatus
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recruitq.api.app import app
from recruitq.core.config import Settings
from recruitq.db.base import Base
from recruitq.models.ai import (
    CVAnalysisRequest,
    InterviewAnalysisRequest,
    JobRequirementsRequest,
    QuestionGenerationRequest,
)
from recruitq.models.job import Job, QueueName
from recruitq.services.job_store import JobStore
from recruitq.workers.manager import build_queue_manager
from recruitq.workers.processors import JobProcessor


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """
    Create a file-backed SQLite database for testing.

    Worker threads each get their own connection, so an in-memory database
    shared through a single connection is not used here.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'jobs.db'}",
        connect_args={"check_same_thread": False},
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the test database."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def store(session_factory) -> JobStore:
    """Job store for a test queue."""
    return JobStore(session_factory, "test-queue")


# ============================================================================
# Fake Processors
# ============================================================================


class FakeProcessor(JobProcessor):
    """
    Processor driven by the job payload.

    Payload keys:
        fail: raise RuntimeError with this message
        delay: sleep this many seconds before finishing
        progress: list of progress values to report
        result: value to return (defaults to {"echo": data})
    """

    def __init__(self, request_model=None, estimate: int = 5000):
        self.request_model = request_model
        self.estimate = estimate
        self.calls = 0

    def validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if self.request_model is None:
            return dict(data)
        return super().validate(data)

    async def process(self, job: Job, report_progress) -> Any:
        self.calls += 1
        for value in job.data.get("progress", []):
            await report_progress(value)
        if job.data.get("delay"):
            await asyncio.sleep(job.data["delay"])
        if job.data.get("fail"):
            raise RuntimeError(job.data["fail"])
        return job.data.get("result", {"echo": job.data})

    def get_estimated_processing_time(self, data: Dict[str, Any]) -> int:
        return self.estimate


@pytest.fixture
def fake_processor() -> FakeProcessor:
    return FakeProcessor()


def cv_analysis_result(score: int = 82, match_percentage: int = 78) -> Dict[str, Any]:
    """A CV analysis result as stored on a completed job."""
    return {
        "score": score,
        "strengths": ["Python", "Team leadership"],
        "weaknesses": ["No cloud certification"],
        "recommendations": ["Explore system design depth"],
        "keySkills": ["Python", "FastAPI"],
        "experience": {"years": 6, "relevantExperience": ["Backend services"]},
        "education": {"degree": "BSc Computer Science", "relevantCourses": []},
        "summary": "Strong backend profile.",
        "matchPercentage": match_percentage,
    }


class StubCVProcessor(FakeProcessor):
    """CV processor returning a canned analysis instead of calling OpenAI."""

    def __init__(self):
        super().__init__(request_model=CVAnalysisRequest, estimate=5000)

    async def process(self, job: Job, report_progress) -> Any:
        self.calls += 1
        await report_progress(10)
        await report_progress(90)
        return cv_analysis_result()


def stub_processors() -> Dict[str, FakeProcessor]:
    """One processor per domain queue with its real request validation."""
    return {
        QueueName.CV_ANALYSIS.value: StubCVProcessor(),
        QueueName.QUESTION_GENERATION.value: FakeProcessor(QuestionGenerationRequest, estimate=15000),
        QueueName.INTERVIEW_ANALYSIS.value: FakeProcessor(InterviewAnalysisRequest, estimate=4000),
        QueueName.JOB_REQUIREMENTS.value: FakeProcessor(JobRequirementsRequest, estimate=3000),
    }


# ============================================================================
# RQ Stand-ins
# ============================================================================


class RecordedRQJob:
    """The parts of rq.job.Job the queue engine reads."""

    def __init__(self, job_id: str, func: Callable, args: Tuple, meta: Optional[dict] = None):
        self.id = job_id
        self.func = func
        self.args = args
        self.meta = dict(meta or {})
        self.status = RQJobStatus.QUEUED
        self.exc: Optional[BaseException] = None

    def get_status(self):
        return self.status

    def save_meta(self) -> None:
        pass

    def perform(self) -> None:
        """Run the task the way a work horse does: failures end up on the job."""
        self.status = RQJobStatus.STARTED
        try:
            self.func(*self.args)
        except Exception as e:
            self.exc = e
            self.status = RQJobStatus.FAILED
        else:
            self.status = RQJobStatus.FINISHED


class StartedRegistry:
    """Counts cleanups of RQ's started job registry."""

    def __init__(self):
        self.cleanups = 0

    def cleanup(self) -> None:
        self.cleanups += 1


class DeferredQueue:
    """
    Stand-in for rq.Queue holding enqueued jobs until `work` is called.

    Takes the same constructor arguments build_queue_manager passes to rq.Queue.
    """

    run_on_enqueue = False

    def __init__(self, name: str, connection=None, default_timeout=None):
        self.name = name
        self.connection = connection
        self.default_timeout = default_timeout
        self.jobs: Dict[str, RecordedRQJob] = {}
        self.started_job_registry = StartedRegistry()

    def enqueue(self, func: Callable, *args, job_id: Optional[str] = None, meta=None, **kwargs) -> RecordedRQJob:
        rq_job = RecordedRQJob(job_id, func, args, meta)
        self.jobs[job_id] = rq_job
        if self.run_on_enqueue:
            rq_job.perform()
        return rq_job

    def fetch_job(self, job_id: str) -> Optional[RecordedRQJob]:
        return self.jobs.get(job_id)

    @property
    def queued_ids(self) -> List[str]:
        return [rq_job.id for rq_job in self.jobs.values() if rq_job.status == RQJobStatus.QUEUED]

    def work(self) -> int:
        """Perform every queued job in order, like a burst worker. Returns how many ran."""
        queued = [self.jobs[job_id] for job_id in self.queued_ids]
        for rq_job in queued:
            rq_job.perform()
        return len(queued)


class InlineQueue(DeferredQueue):
    """Runs each job as soon as it is enqueued, like rq.Queue(is_async=False)."""

    run_on_enqueue = True


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================


@pytest.fixture
def redis_connection(mocker):
    """Redis connection shared by the RQ queues."""
    connection = mocker.Mock()
    connection.ping.return_value = True
    return connection


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        QUEUE_CONCURRENCY=2,
        QUEUE_SHUTDOWN_TIMEOUT_SECONDS=5,
        JOB_TIMEOUT_SECONDS=60,
    )


@pytest.fixture
def queue_manager(session_factory, test_settings, redis_connection, mocker):
    """
    Queue manager over the test database with stub processors.

    Jobs run as soon as they are enqueued, and the RQ task resolves its
    queue through this manager as a worker process would.
    """
    manager = build_queue_manager(
        session_factory,
        config=test_settings,
        processors=stub_processors(),
        connection=redis_connection,
        queue_class=InlineQueue,
    )
    mocker.patch("recruitq.workers.tasks.get_worker_manager", return_value=manager)
    return manager


@pytest.fixture
def client(queue_manager) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client whose lifespan starts the test queue manager."""
    app.state.queue_manager = queue_manager

    with TestClient(app) as test_client:
        yield test_client

    app.state.queue_manager = None


def wait_for_status(client: TestClient, path: str, statuses=("completed", "failed"), timeout: float = 5.0) -> dict:
    """Poll a job status URL until the job reaches one of `statuses`."""
    deadline = time.monotonic() + timeout
    body: Optional[dict] = None
    while time.monotonic() < deadline:
        response = client.get(path)
        assert response.status_code == 200
        body = response.json()
        if body["status"] in statuses:
            return body
        time.sleep(0.02)
    raise AssertionError(f"Job did not reach {statuses} in {timeout}s (last: {body})")


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_redis(mocker):
    """Mock asyncio Redis client for caching tests."""
    mock_redis_client = mocker.AsyncMock()
    mock_redis_client.get.return_value = None
    mock_redis_client.set.return_value = True
    mocker.patch("redis.asyncio.from_url", return_value=mock_redis_client)
    return mock_redis_client


@pytest.fixture
def mock_openai_chat(mocker):
    """AsyncOpenAI stand-in whose chat completion content can be set per test."""

    def make_response(content: Optional[str]):
        response = mocker.Mock()
        response.choices = [mocker.Mock(message=mocker.Mock(content=content))]
        return response

    client = mocker.Mock()
    client.chat.completions.create = mocker.AsyncMock(return_value=make_response("{}"))
    client.make_response = make_response
    return client


# ============================================================================
# Test Data Fixtures
# ============================================================================


@pytest.fixture
def cv_payload() -> Dict[str, Any]:
    return {
        "cvText": "Senior Python engineer, 6 years building FastAPI services.",
        "jobRequirements": "Python, FastAPI, SQL",
        "userId": "user-1",
    }


@pytest.fixture
def question_payload() -> Dict[str, Any]:
    return {
        "jobTitle": "Backend Engineer",
        "skills": ["Python", "PostgreSQL"],
        "count": 5,
        "difficulty": "medium",
        "type": "technical",
        "userId": "user-1",
    }


@pytest.fixture
def interview_payload() -> Dict[str, Any]:
    return {
        "sessionId": "session-1",
        "questions": [
            {"id": "q1", "question": "Explain the GIL.", "type": "technical", "difficulty": "medium"},
            {"id": "q2", "question": "Describe a conflict you resolved.", "type": "behavioral", "difficulty": "easy"},
        ],
        "answers": [
            {"questionId": "q1", "answer": "It serialises bytecode execution.", "duration": 45000},
        ],
        "userId": "user-1",
    }


@pytest.fixture
def job_requirements_payload() -> Dict[str, Any]:
    return {
        "jobTitle": "Data Engineer",
        "userId": "user-1",
        "industry": "Fintech",
        "seniority": "Senior",
    }
