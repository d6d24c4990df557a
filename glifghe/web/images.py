"""
Image CDN URLs.

Images are stored by the CDN under an opaque public id; the UI only ever
turns (public_id, display parameters) into a delivery URL. Values that
are already absolute URLs are passed through unchanged.
"""
from glifghe.web.config import settings

CDN_HOST = "https://res.cloudinary.com"


def image_url(
    public_id: str,
    crop: str | None = "fill",
    width: int | str | None = None,
    height: int | str | None = None,
) -> str:
    if not public_id:
        return ""
    if public_id.startswith(("http://", "https://")):
        return public_id

    transforms = []
    if crop:
        transforms.append(f"c_{crop}")
    if width:
        transforms.append(f"w_{width}")
    if height:
        transforms.append(f"h_{height}")

    parts = [CDN_HOST, settings.cloudinary_cloud_name, "image", "upload"]
    if transforms:
        parts.append(",".join(transforms))
    parts.append(public_id.lstrip("/"))
    return "/".join(parts)
