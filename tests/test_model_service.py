"""
Tests for source model import and removal.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.models import SourceModel, VoiceProfile
from app.services import model_service
from app.services.errors import ModelImportError
from app.services.voice_service import TrainResult
from app.storage import StorageError


@pytest.fixture
def media():
    """ffmpeg replaced by file writes."""
    async def transcode(source, out_path):
        out_path.write_bytes(b'video')
        return out_path

    async def extract(video, audio_path):
        audio_path.write_bytes(b'audio')
        return audio_path

    with patch('app.services.media.transcode_to_compatible', AsyncMock(side_effect=transcode)) as t, \
         patch('app.services.media.extract_audio', AsyncMock(side_effect=extract)) as e:
        yield t, e


@pytest.fixture
def source_video(tmp_path):
    path = tmp_path / 'upload' / 'presenter.mov'
    path.parent.mkdir()
    path.write_bytes(b'raw video')
    return path


@pytest.fixture
def voices(mock_voice_service, test_session):
    async def train(session, reference, lang='zh', mode=None):
        voice = VoiceProfile(origin_audio_path=reference, lang=lang)
        session.add(voice)
        await session.commit()
        return TrainResult.trained(voice)

    mock_voice_service.train.side_effect = train
    return mock_voice_service


class TestImportModel:

    @pytest.mark.asyncio
    async def test_local_import(self, test_session, media, source_video, voices):
        from app import config

        model = await model_service.import_model(
            test_session, 'Presenter', str(source_video), voice_service=voices,
        )

        assert model.name == 'Presenter'
        assert model.is_remote is False
        assert model.video_path.startswith('facesync_data/face2face/temp/')
        assert model.video_path.endswith('.mp4')
        assert model.audio_path.startswith('facesync_data/voice/data/origin_audio/')
        assert (config.DATA_ROOT / model.video_path).read_bytes() == b'video'

        reference = voices.train.await_args.args[1]
        assert reference.startswith('origin_audio/')
        assert reference.endswith('.wav')
        voice = await test_session.get(VoiceProfile, model.voice_id)
        assert voice is not None

    @pytest.mark.asyncio
    async def test_copy_without_transcode(self, test_session, media, source_video, voices):
        with patch('app.config.TRANSCODE_ON_IMPORT', False):
            model = await model_service.import_model(test_session, 'Raw', str(source_video), voice_service=voices)

        transcode, _ = media
        transcode.assert_not_awaited()
        assert model.video_path.endswith('.mov')

    @pytest.mark.asyncio
    async def test_missing_video(self, test_session, media, voices, tmp_path, data_root):
        with pytest.raises(ModelImportError):
            await model_service.import_model(test_session, 'x', str(tmp_path / 'nope.mp4'), voice_service=voices)

    @pytest.mark.asyncio
    async def test_training_rejection_aborts_import(self, test_session, media, source_video, mock_voice_service):
        from sqlalchemy import select

        mock_voice_service.train.return_value = TrainResult.rejected(1, 'no speech')

        with pytest.raises(ModelImportError, match='no speech'):
            await model_service.import_model(
                test_session, 'Presenter', str(source_video), voice_service=mock_voice_service,
            )

        assert (await test_session.execute(select(SourceModel))).first() is None

    @pytest.mark.asyncio
    async def test_remote_import_uploads_and_trains_from_url(self, test_session, media, source_video, voices):
        storage = MagicMock()
        storage.upload = AsyncMock(side_effect=lambda key, source: f'http://files.test/{key}')

        with patch('app.config.REMOTE_STORAGE_ENABLED', True), \
             patch('app.services.model_service.get_storage', return_value=storage):
            model = await model_service.import_model(
                test_session, 'Remote', str(source_video), use_remote_storage=True, voice_service=voices,
            )

        assert model.is_remote is True
        uploaded = [c.args[0] for c in storage.upload.await_args_list]
        assert uploaded == [model.video_path, model.audio_path]
        assert voices.train.await_args.args[1] == f'http://files.test/{model.audio_path}'

    @pytest.mark.asyncio
    async def test_remote_requested_but_disabled_stays_local(self, test_session, media, source_video, voices):
        with patch('app.config.REMOTE_STORAGE_ENABLED', False):
            model = await model_service.import_model(
                test_session, 'Local', str(source_video), use_remote_storage=True, voice_service=voices,
            )

        assert model.is_remote is False

    @pytest.mark.asyncio
    async def test_upload_failure_escalates(self, test_session, media, source_video, voices):
        storage = MagicMock()
        storage.upload = AsyncMock(side_effect=StorageError('unreachable'))

        with patch('app.config.REMOTE_STORAGE_ENABLED', True), \
             patch('app.services.model_service.get_storage', return_value=storage):
            with pytest.raises(StorageError):
                await model_service.import_model(
                    test_session, 'Remote', str(source_video), use_remote_storage=True, voice_service=voices,
                )

        voices.train.assert_not_awaited()


class TestListModels:

    @pytest.mark.asyncio
    async def test_paging_and_name_filter(self, test_session, make_model):
        await make_model(name='Alice')
        await make_model(name='Bob')
        await make_model(name='Alicia')

        models, total = await model_service.list_models(test_session, 10, 0, 'Ali')

        assert total == 2
        assert {m.name for m in models} == {'Alice', 'Alicia'}

        page, total = await model_service.list_models(test_session, 1, 0)
        assert total == 3
        assert len(page) == 1

    def test_artifact_location(self, data_root):
        from app.storage import StorageMode

        key = 'facesync_data/face2face/temp/v.mp4'
        assert model_service.artifact_location(key, StorageMode.local) == str(data_root / key)
        assert model_service.artifact_location(None, StorageMode.local) is None


class TestRemoveModel:

    @pytest.mark.asyncio
    async def test_deletes_record_and_local_files(self, test_session, make_model):
        from app import config

        (config.MODEL_DIR / 'v.mp4').write_bytes(b'v')
        (config.TTS_TRAIN_DIR / 'ref.wav').write_bytes(b'a')
        model = await make_model()

        await model_service.remove_model(test_session, model.id)

        assert await test_session.get(SourceModel, model.id) is None
        assert not (config.MODEL_DIR / 'v.mp4').exists()
        assert not (config.TTS_TRAIN_DIR / 'ref.wav').exists()

    @pytest.mark.asyncio
    async def test_remote_failure_does_not_block_removal(self, test_session, make_model):
        model = await make_model(is_remote=True)
        storage = MagicMock()
        storage.delete = AsyncMock(side_effect=StorageError('gave up'))

        with patch('app.services.model_service.get_storage', return_value=storage):
            await model_service.remove_model(test_session, model.id)

        assert storage.delete.await_count == 2
        assert await test_session.get(SourceModel, model.id) is None
