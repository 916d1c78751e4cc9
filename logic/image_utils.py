import base64
import io
import mimetypes
import os
from typing import List

import numpy as np
import pydicom
from PIL import Image
from pydicom.pixels import apply_modality_lut, apply_voi_lut

RASTER_EXTENSIONS = (".png", ".jpg", ".jpeg")


def is_dicom(path: str) -> bool:
    try:
        with open(path, "rb") as f:
            f.seek(128)
            if f.read(4) == b"DICM":
                return True
    except OSError:
        return False
    # no preamble: try reading the header only
    try:
        pydicom.dcmread(path, stop_before_pixels=True, force=False)
        return True
    except Exception:
        return False


def to_data_url(raw: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def pil_to_data_url(img: Image.Image) -> str:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return to_data_url(buf.getvalue(), "image/png")


def data_url_to_pil(data_url: str) -> Image.Image:
    """Decode an embedded image back to an RGBA Pillow image."""
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("Not a data URL")
    header, payload = data_url.split(",", 1)
    if header.endswith(";base64"):
        raw = base64.b64decode(payload)
    else:
        raw = payload.encode("utf-8")
    return Image.open(io.BytesIO(raw)).convert("RGBA")


def _to_uint8(a: np.ndarray) -> np.ndarray:
    a = a.astype("float32")
    if a.size >= 16:
        lo, hi = np.percentile(a, (1, 99))
    else:
        lo, hi = float(a.min()), float(a.max())
    if hi <= lo:
        lo, hi = float(a.min()), float(a.max())
    if hi <= lo:
        return np.zeros(a.shape, dtype="uint8")
    a = np.clip(a, lo, hi)
    a = (a - lo) / (hi - lo)
    return (a * 255.0 + 0.5).astype("uint8")


def _color_to_uint8(a: np.ndarray) -> np.ndarray:
    if a.dtype != "uint8":
        a = np.clip(a, 0, 255).astype("uint8")
    return a[..., :3]


def dicom_to_frames(path: str) -> List[Image.Image]:
    """
    Decode a DICOM file (modality/VOI LUT, MONOCHROME1, multi-frame) into
    one grayscale or RGB Pillow image per frame.
    """
    ds = pydicom.dcmread(path, force=True)
    try:
        arr = ds.pixel_array
    except Exception as e:
        raise RuntimeError(
            "Cannot decode DICOM pixel data. Install plugins:\n"
            "pip install pylibjpeg pylibjpeg-libjpeg pylibjpeg-openjpeg"
        ) from e

    photometric = str(getattr(ds, "PhotometricInterpretation", "")).upper()
    color = int(getattr(ds, "SamplesPerPixel", 1) or 1) > 1

    if not color:
        try:
            arr = apply_modality_lut(arr, ds)
        except Exception:
            pass
        try:
            arr = apply_voi_lut(arr, ds)
        except Exception:
            pass
        if photometric == "MONOCHROME1":
            arr = arr.max() - arr

    if color:
        frames = [arr] if arr.ndim == 3 else [arr[i] for i in range(arr.shape[0])]
        return [Image.fromarray(_color_to_uint8(f)) for f in frames]
    if arr.ndim == 2:
        return [Image.fromarray(_to_uint8(arr))]
    return [Image.fromarray(_to_uint8(arr[i])) for i in range(arr.shape[0])]


def file_to_data_urls(path: str) -> List[str]:
    """One data URL per displayable frame of `path`."""
    ext = os.path.splitext(path)[1].lower()
    if ext in RASTER_EXTENSIONS:
        mime = mimetypes.guess_type(path)[0] or "image/png"
        with open(path, "rb") as f:
            raw = f.read()
        # fail early on files Pillow cannot read
        Image.open(io.BytesIO(raw)).verify()
        return [to_data_url(raw, mime)]
    if is_dicom(path):
        return [pil_to_data_url(frame) for frame in dicom_to_frames(path)]
    # unknown: let Pillow try, re-encode as PNG
    with Image.open(path) as img:
        return [pil_to_data_url(img.convert("RGBA"))]
