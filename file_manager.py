#!/usr/bin/env python3
"""
File manager API

Small REST service exposing a storage directory for upload, download,
listing and deletion. It is the server side of the 'api' remote storage
backend. Every client supplied path goes through sanitize_path before it is
joined to the storage root.
"""
import logging
import os
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, PlainTextResponse
from pydantic import BaseModel

from app.storage.paths import sanitize_path

logger = logging.getLogger(__name__)

STORAGE_PATH = Path(os.environ.get('STORAGE_PATH', './storage'))
PORT = int(os.environ.get('PORT', '3000'))


class DeleteRequest(BaseModel):
    filename: Optional[str] = None
    path: str = ''


class MkdirRequest(BaseModel):
    dirname: Optional[str] = None
    path: str = ''


def resolve(relative_path: Optional[str], *parts: str) -> Path:
    """Join a sanitized relative path (and file name parts) to the storage root."""
    relative = sanitize_path(relative_path) if relative_path else ''
    return STORAGE_PATH.joinpath(relative, *(sanitize_path(p) for p in parts))


app = FastAPI(title='File Manager API')


@app.post('/upload')
async def upload(file: Optional[UploadFile] = File(None), path: Optional[str] = Query(None)):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail='No files were uploaded.')

    target_dir = resolve(path)
    target_dir.mkdir(parents=True, exist_ok=True)
    file_path = target_dir / sanitize_path(file.filename)
    file_path.write_bytes(await file.read())
    logger.info('Uploaded %s', file_path)

    return {
        'message': 'File uploaded!',
        'filename': file.filename,
        'path': sanitize_path(path) if path else '',
    }


@app.get('/download')
async def download(filename: Optional[str] = Query(None), path: Optional[str] = Query(None)):
    if not filename:
        raise HTTPException(status_code=400, detail='Filename is required')

    file_path = resolve(path, filename)
    if not file_path.is_file():
        raise HTTPException(status_code=404, detail='File not found')
    return FileResponse(str(file_path), filename=file_path.name)


@app.get('/files')
async def list_files(path: Optional[str] = Query(None)):
    target_dir = resolve(path)
    if not target_dir.is_dir():
        raise HTTPException(status_code=404, detail='Directory not found')
    return sorted(entry.name for entry in target_dir.iterdir())


@app.delete('/delete')
async def delete(request: DeleteRequest):
    if not request.filename:
        raise HTTPException(status_code=400, detail='Filename is required')

    file_path = resolve(request.path, request.filename)
    if not file_path.is_file():
        raise HTTPException(status_code=404, detail='File not found')
    file_path.unlink()
    logger.info('Deleted %s', file_path)
    return {'message': 'File deleted!', 'filename': request.filename}


@app.post('/mkdir')
async def mkdir(request: MkdirRequest):
    if not request.dirname:
        raise HTTPException(status_code=400, detail='Dirname is required')

    target_dir = resolve(request.path, request.dirname)
    target_dir.mkdir(parents=True, exist_ok=True)
    return {'message': 'Directory created!', 'path': str(target_dir.relative_to(STORAGE_PATH).as_posix())}


@app.get('/health', response_class=PlainTextResponse)
async def health():
    return 'OK'


if __name__ == '__main__':
    STORAGE_PATH.mkdir(parents=True, exist_ok=True)
    logger.info('Storage path: %s', STORAGE_PATH.resolve())
    uvicorn.run(app, host='0.0.0.0', port=PORT, log_level='info')
