"""
Pytest fixtures for testing.
"""
from typing import AsyncGenerator
from unittest.mock import MagicMock, patch, AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.clients.face2face import Face2FaceClient, SubmitResponse, StatusResponse
from app.models import Base, SourceModel, SynthesisJob, VoiceProfile, JobStatus
from app.database import get_db
from app.services.voice_service import VoiceService, get_voice_service, reset_voice_service
from app.services.job_scheduler import reset_job_scheduler
from app.storage import reset_storage
from app.storage.paths import key_for


@pytest.fixture
def test_db_url(tmp_path):
    """A fresh database per test so queue order never leaks between tests."""
    return f'sqlite+aiosqlite:///{tmp_path / "test.db"}'


@pytest_asyncio.fixture
async def test_engine(test_db_url):
    """Create a test database engine."""
    engine = create_async_engine(test_db_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def data_root(tmp_path):
    """Point every artifact directory at a temporary data root."""
    root = tmp_path / 'data'
    data_dir = root / 'facesync_data'
    model_dir = data_dir / 'face2face' / 'temp'
    tts_root = data_dir / 'voice' / 'data'
    tts_train = tts_root / 'origin_audio'
    for directory in (model_dir, tts_train):
        directory.mkdir(parents=True)

    reset_storage()
    with patch('app.config.DATA_ROOT', root), \
         patch('app.config.DATA_DIR', data_dir), \
         patch('app.config.MODEL_DIR', model_dir), \
         patch('app.config.TTS_PRODUCT_DIR', model_dir), \
         patch('app.config.TTS_ROOT', tts_root), \
         patch('app.config.TTS_TRAIN_DIR', tts_train), \
         patch('app.config.REMOTE_STORAGE_ENABLED', False), \
         patch('app.config.DEV_MODE', False):
        yield root
    reset_storage()


@pytest.fixture
def mock_face2face():
    """Face2face client that accepts every submission."""
    client = MagicMock(spec=Face2FaceClient)
    client.submit = AsyncMock(return_value=SubmitResponse(code=10000, msg='accepted'))
    client.query = AsyncMock(return_value=StatusResponse(
        code=10000,
        data={'status': 1, 'progress': 10, 'msg': 'rendering'},
    ))
    return client


@pytest.fixture
def mock_voice_service(data_root):
    """Voice service whose synthesize writes a small WAV into the product dir."""
    from app import config

    service = MagicMock(spec=VoiceService)

    async def synthesize(session, voice_id, text, target_dir=None):
        path = config.TTS_PRODUCT_DIR / f'speech-{voice_id}.wav'
        path.write_bytes(b'RIFF' + b'\x00' * 40)
        return path

    service.synthesize = AsyncMock(side_effect=synthesize)
    service.train = AsyncMock()
    service.audition = AsyncMock()
    return service


@pytest.fixture
def make_model(session_factory, data_root):
    """Factory inserting a source model whose video lives in the service working dir."""
    from app import config

    async def _make(name='model', video='v.mp4', voice_id=1, is_remote=False):
        async with session_factory() as session:
            voice = await session.get(VoiceProfile, voice_id)
            if voice is None:
                session.add(VoiceProfile(
                    id=voice_id,
                    origin_audio_path='origin_audio/ref.wav',
                    lang='zh',
                    asr_format_audio_url='/code/data/format_ref.wav',
                    reference_audio_text='reference text',
                ))
            model = SourceModel(
                name=name,
                video_path=key_for(config.MODEL_DIR / video),
                audio_path=key_for(config.TTS_TRAIN_DIR / 'ref.wav'),
                voice_id=voice_id,
                is_remote=is_remote,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return model

    return _make


@pytest.fixture
def make_job(session_factory):
    """Factory inserting a synthesis job."""
    async def _make(model, text='hello', status=JobStatus.draft, **fields):
        async with session_factory() as session:
            job = SynthesisJob(
                model_id=model.id,
                name=fields.pop('name', 'job'),
                text=text,
                status=status.value,
                **fields,
            )
            session.add(job)
            await session.commit()
            await session.refresh(job)
            return job

    return _make


@pytest.fixture
def fetch_job(session_factory):
    async def _fetch(job_id):
        async with session_factory() as session:
            return await session.get(SynthesisJob, job_id)

    return _fetch


@pytest_asyncio.fixture
async def client(session_factory, mock_voice_service, data_root):
    """Create a test client with mocked dependencies."""
    reset_voice_service()
    reset_job_scheduler()

    from server import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_voice_service] = lambda: mock_voice_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as client:
        yield client

    app.dependency_overrides.clear()
    reset_voice_service()
    reset_job_scheduler()
