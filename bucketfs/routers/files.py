from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from ..config import settings
from ..deps import get_filesystem
from ..errors import BoundaryViolation, BucketFSError, InvalidArgument, NotFound, NotSupported, StorageTimeout, UpstreamError
from ..schemas import ApiResponse, FileActionRequest, MkdirRequest
from ..services.filesystem import S3FS
from ..services.paths import base_name

router = APIRouter(prefix='/api/files', tags=['files'])

_STATUS_BY_ERROR: list[tuple[type[BucketFSError], int]] = [
    (BoundaryViolation, 403),
    (NotFound, 404),
    (NotSupported, 501),
    (InvalidArgument, 400),
    (StorageTimeout, 504),
    (UpstreamError, 502),
]


def content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


def http_error(exc: BucketFSError) -> HTTPException:
    for kind, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.get('/list')
def list_files(
    path: str = Query(default=''),
    sort_by: str = Query(default='name', pattern='^(name|size|date)$'),
    order: str = Query(default='asc', pattern='^(asc|desc)$'),
    fs: S3FS = Depends(get_filesystem),
):
    try:
        entries = fs.read_dir(path)
    except BucketFSError as exc:
        raise http_error(exc) from exc

    items = [{**entry.to_dict(), 'path': fs.join(path, entry.name)} for entry in entries]
    reverse = order == 'desc'
    key_map = {'name': lambda i: i['name'].lower(), 'size': lambda i: i['size'], 'date': lambda i: i['mtime']}
    items.sort(key=key_map[sort_by], reverse=reverse)
    return {'ok': True, 'data': items}


@router.get('/stat')
def stat_file(path: str = Query(...), fs: S3FS = Depends(get_filesystem)):
    try:
        entry = fs.stat(path)
    except BucketFSError as exc:
        raise http_error(exc) from exc
    return {'ok': True, 'data': entry.to_dict()}


@router.get('/download')
def download(path: str = Query(...), fs: S3FS = Depends(get_filesystem)):
    try:
        with fs.open(path) as handle:
            content = handle.read()
    except BucketFSError as exc:
        raise http_error(exc) from exc

    headers = {'Content-Disposition': content_disposition(base_name(path))}
    return Response(content, media_type='application/octet-stream', headers=headers)


@router.post('/upload')
async def upload(path: str = Query(default=''), file: UploadFile = File(...), fs: S3FS = Depends(get_filesystem)):
    if not file.filename:
        raise HTTPException(status_code=400, detail='filename is required')

    target = fs.join(path, file.filename)
    try:
        with fs.create(target) as handle:
            while chunk := await file.read(1024 * 1024):
                if handle.size + len(chunk) > settings.max_upload_bytes:
                    raise HTTPException(status_code=413, detail='Upload too large')
                handle.write(chunk)
            handle.flush()
    except BucketFSError as exc:
        raise http_error(exc) from exc
    return ApiResponse(ok=True, message='Uploaded', data={'path': target})


@router.post('/mkdir')
def mkdir(payload: MkdirRequest, fs: S3FS = Depends(get_filesystem)):
    try:
        fs.mkdir_all(fs.join(payload.path, payload.name))
    except BucketFSError as exc:
        raise http_error(exc) from exc
    return ApiResponse(ok=True, message='Folder created')


@router.post('/rename')
def rename(payload: FileActionRequest, fs: S3FS = Depends(get_filesystem)):
    if not payload.new_name:
        raise HTTPException(status_code=400, detail='new_name is required')
    try:
        fs.rename(payload.path, payload.new_name)
    except BucketFSError as exc:
        raise http_error(exc) from exc
    return ApiResponse(ok=True, message='Renamed')


@router.post('/delete')
def delete(payload: FileActionRequest, fs: S3FS = Depends(get_filesystem)):
    try:
        fs.remove(payload.path)
    except BucketFSError as exc:
        raise http_error(exc) from exc
    return ApiResponse(ok=True, message='Deleted')
