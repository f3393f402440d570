# Overview: Public read access to stored objects.

from flask import Blueprint, abort, send_from_directory

from ..services import storage_service


storage_bp = Blueprint("storage", __name__, url_prefix="/api/storage")


@storage_bp.get("/<bucket>/<path:path>")
def read_object_route(bucket: str, path: str):
    if bucket not in storage_service.BUCKETS or not storage_service.exists(bucket, path):
        abort(404)
    # send_from_directory refuses paths that escape the bucket
    return send_from_directory(storage_service.bucket_dir(bucket), path)
