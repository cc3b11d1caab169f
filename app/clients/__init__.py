"""
HTTP clients for the inference services.
"""
from app.clients.face2face import Face2FaceClient, SubmitResponse, StatusResponse, get_face2face_client
from app.clients.tts import TTSClient, get_tts_client

__all__ = [
    'Face2FaceClient',
    'SubmitResponse',
    'StatusResponse',
    'TTSClient',
    'get_face2face_client',
    'get_tts_client',
]
