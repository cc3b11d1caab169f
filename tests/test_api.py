"""
API layer tests for health, voice, model and job endpoints.
"""
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from app.models import JobStatus, VoiceProfile
from app.services.voice_service import TrainResult


class TestHealthEndpoint:

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Test GET /health reports scheduler and storage state."""
        response = await client.get('/health')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ok'
        assert data['scheduler_running'] is False
        assert 'version' in data


class TestVoiceEndpoints:
    """Tests for /voices endpoints."""

    @pytest.mark.asyncio
    async def test_list_voices(self, client, make_model):
        await make_model()

        response = await client.get('/voices')

        assert response.status_code == 200
        voices = response.json()['voices']
        assert len(voices) == 1
        assert voices[0]['reference_audio_text'] == 'reference text'

    @pytest.mark.asyncio
    async def test_get_voice_not_found(self, client):
        response = await client.get('/voices/99')
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_train_voice(self, client, mock_voice_service):
        voice = VoiceProfile(id=5, origin_audio_path='origin_audio/a.wav', lang='zh', created_at=datetime(2024, 1, 1))
        mock_voice_service.train.return_value = TrainResult.trained(voice)

        response = await client.post('/voices/train', json={'reference_audio': 'origin_audio/a.wav'})

        assert response.status_code == 201
        assert response.json()['id'] == 5

    @pytest.mark.asyncio
    async def test_train_voice_rejected(self, client, mock_voice_service):
        """Test a rejection by the TTS service maps to 422."""
        mock_voice_service.train.return_value = TrainResult.rejected(7, 'too short')

        response = await client.post('/voices/train', json={'reference_audio': 'origin_audio/a.wav'})

        assert response.status_code == 422
        assert 'too short' in response.json()['detail']

    @pytest.mark.asyncio
    async def test_audition(self, client, mock_voice_service, tmp_path):
        clip = tmp_path / 'preview.wav'
        clip.write_bytes(b'RIFFpreview')
        mock_voice_service.audition.return_value = clip

        response = await client.post('/voices/1/audition', json={'text': 'Testing one two'})

        assert response.status_code == 200
        assert response.content == b'RIFFpreview'
        assert mock_voice_service.audition.await_args.args[1:] == (1, 'Testing one two')


class TestModelEndpoints:
    """Tests for /models endpoints."""

    @pytest.mark.asyncio
    async def test_list_and_count(self, client, make_model):
        await make_model(name='Alice')
        await make_model(name='Bob')

        response = await client.get('/models', params={'name': 'Ali'})
        assert response.status_code == 200
        data = response.json()
        assert data['total'] == 1
        assert data['models'][0]['name'] == 'Alice'
        assert data['models'][0]['video_location'].endswith('v.mp4')

        response = await client.get('/models/count')
        assert response.json() == {'total': 2}

    @pytest.mark.asyncio
    async def test_get_model(self, client, make_model):
        model = await make_model(name='Alice')

        response = await client.get(f'/models/{model.id}')

        assert response.status_code == 200
        assert response.json()['voice_id'] == model.voice_id

    @pytest.mark.asyncio
    async def test_import_model(self, client, mock_voice_service, tmp_path):
        source = tmp_path / 'in.mp4'
        source.write_bytes(b'video')
        voice = VoiceProfile(id=3, origin_audio_path='origin_audio/x.wav')
        mock_voice_service.train.return_value = TrainResult.trained(voice)

        async def write(_, out_path):
            out_path.write_bytes(b'data')
            return out_path

        with patch('app.services.media.transcode_to_compatible', AsyncMock(side_effect=write)), \
             patch('app.services.media.extract_audio', AsyncMock(side_effect=write)):
            response = await client.post('/models', json={'name': 'Presenter', 'video_path': str(source)})

        assert response.status_code == 201
        data = response.json()
        assert data['name'] == 'Presenter'
        assert data['voice_id'] == 3
        assert data['is_remote'] is False

    @pytest.mark.asyncio
    async def test_import_model_training_rejected(self, client, mock_voice_service, tmp_path):
        source = tmp_path / 'in.mp4'
        source.write_bytes(b'video')
        mock_voice_service.train.return_value = TrainResult.rejected(1, 'no speech')

        async def write(_, out_path):
            out_path.write_bytes(b'data')
            return out_path

        with patch('app.services.media.transcode_to_compatible', AsyncMock(side_effect=write)), \
             patch('app.services.media.extract_audio', AsyncMock(side_effect=write)):
            response = await client.post('/models', json={'name': 'Presenter', 'video_path': str(source)})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_delete_model(self, client, make_model):
        model = await make_model()

        response = await client.delete(f'/models/{model.id}')
        assert response.status_code == 204

        response = await client.get(f'/models/{model.id}')
        assert response.status_code == 404


class TestJobEndpoints:
    """Tests for /jobs endpoints."""

    @pytest.mark.asyncio
    async def test_create_job(self, client, make_model):
        """Test POST /jobs creates a draft job."""
        model = await make_model()

        response = await client.post('/jobs', json={'model_id': model.id, 'name': 'intro', 'text': 'Hello'})

        assert response.status_code == 201
        data = response.json()
        assert data['status'] == 'draft'
        assert data['progress'] == 0
        assert data['file_path'] is None

    @pytest.mark.asyncio
    async def test_create_job_needs_text_or_audio(self, client, make_model):
        model = await make_model()

        response = await client.post('/jobs', json={'model_id': model.id, 'text': '   '})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_job_unknown_model(self, client, data_root):
        response = await client.post('/jobs', json={'model_id': 404, 'text': 'Hello'})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_submit_and_queue_position(self, client, make_model, make_job):
        """Test POST /jobs/{id}/submit queues the job and reports its position."""
        model = await make_model()
        await make_job(model, status=JobStatus.waiting)
        job = await make_job(model)

        response = await client.post(f'/jobs/{job.id}/submit')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'waiting'
        assert data['queue_position'] == 2
        assert data['queue_length'] == 2

    @pytest.mark.asyncio
    async def test_withdraw(self, client, make_model, make_job):
        model = await make_model()
        job = await make_job(model, status=JobStatus.waiting)

        response = await client.post(f'/jobs/{job.id}/withdraw')

        assert response.status_code == 200
        assert response.json()['status'] == 'draft'

    @pytest.mark.asyncio
    async def test_edit_pending_job_conflicts(self, client, make_model, make_job):
        """Test PUT /jobs/{id} on a pending job returns 409."""
        model = await make_model()
        job = await make_job(model, status=JobStatus.pending)

        response = await client.put(f'/jobs/{job.id}', json={'text': 'changed'})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_edit_draft_job(self, client, make_model, make_job):
        model = await make_model()
        job = await make_job(model)

        response = await client.put(f'/jobs/{job.id}', json={'text': 'changed'})

        assert response.status_code == 200
        assert response.json()['text'] == 'changed'

    @pytest.mark.parametrize('field', ['name', 'model_id'])
    @pytest.mark.asyncio
    async def test_edit_rejects_null_for_required_fields(self, field, client, make_model, make_job, fetch_job):
        """Test PUT /jobs/{id} with null name or model_id returns 422 and keeps the job."""
        model = await make_model()
        job = await make_job(model, name='intro')

        response = await client.put(f'/jobs/{job.id}', json={field: None})

        assert response.status_code == 422
        saved = await fetch_job(job.id)
        assert saved.name == 'intro'
        assert saved.model_id == model.id

    @pytest.mark.asyncio
    async def test_list_and_count(self, client, make_model, make_job):
        model = await make_model()
        await make_job(model, name='first')
        await make_job(model, name='second', status=JobStatus.waiting)

        response = await client.get('/jobs')
        data = response.json()
        assert data['total'] == 2
        waiting = [j for j in data['jobs'] if j['status'] == 'waiting']
        assert waiting[0]['queue_position'] == 1

        response = await client.get('/jobs/count', params={'name': 'sec'})
        assert response.json() == {'total': 1}

    @pytest.mark.asyncio
    async def test_get_job_not_found(self, client):
        response = await client.get('/jobs/123')
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_video_of_finished_job(self, client, make_model, make_job):
        from app import config

        (config.MODEL_DIR / 'out.mp4').write_bytes(b'mp4-bytes')
        model = await make_model()
        job = await make_job(model, status=JobStatus.success, file_path='/out.mp4', duration=3.0)

        response = await client.get(f'/jobs/{job.id}/video')

        assert response.status_code == 200
        assert response.content == b'mp4-bytes'
        assert response.headers['content-type'] == 'video/mp4'

    @pytest.mark.asyncio
    async def test_video_not_ready(self, client, make_model, make_job):
        model = await make_model()
        job = await make_job(model, status=JobStatus.pending)

        response = await client.get(f'/jobs/{job.id}/video')

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_export(self, client, make_model, make_job, tmp_path):
        from app import config

        (config.MODEL_DIR / 'out.mp4').write_bytes(b'mp4-bytes')
        model = await make_model()
        job = await make_job(model, status=JobStatus.success, file_path='out.mp4')
        target = tmp_path / 'export' / 'final.mp4'

        response = await client.post(f'/jobs/{job.id}/export', json={'output_path': str(target)})

        assert response.status_code == 204
        assert target.read_bytes() == b'mp4-bytes'

    @pytest.mark.asyncio
    async def test_delete_job(self, client, make_model, make_job, fetch_job):
        model = await make_model()
        job = await make_job(model, status=JobStatus.failed)

        response = await client.delete(f'/jobs/{job.id}')

        assert response.status_code == 204
        assert await fetch_job(job.id) is None
