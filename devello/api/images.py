"""
API: Images
Serves product images from Google Cloud Storage
"""
from flask import Blueprint, Response

from ..utils.cloud_storage import get_file_content

bp = Blueprint("images", __name__)


@bp.route("/<path:image_path>", methods=["GET"])
def serve_image(image_path):
    """
    Streams one stored image

    Args:
        image_path: Object path in the bucket (e.g. products/17/<uuid>_door.png)
    """
    content, content_type = get_file_content(image_path)
    if content is None:
        return Response("Image not found", status=404, mimetype="text/plain")

    response = Response(content, mimetype=content_type)
    response.headers["Cache-Control"] = "public, max-age=31536000"  # 1 year
    return response
