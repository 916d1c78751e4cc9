"""
Tests for image import: raster files, DICOM frames, data URLs.
"""
import numpy as np
import pydicom
import pytest
from PIL import Image
from pydicom.dataset import FileDataset, FileMetaDataset
from pydicom.uid import ExplicitVRLittleEndian

from logic.image_utils import (
    data_url_to_pil,
    dicom_to_frames,
    file_to_data_urls,
    is_dicom,
    pil_to_data_url,
)


def write_dicom(path, pixels: np.ndarray, photometric="MONOCHROME2"):
    meta = FileMetaDataset()
    meta.MediaStorageSOPClassUID = pydicom.uid.SecondaryCaptureImageStorage
    meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(str(path), {}, file_meta=meta, preamble=b"\x00" * 128)
    ds.SOPClassUID = meta.MediaStorageSOPClassUID
    ds.SOPInstanceUID = meta.MediaStorageSOPInstanceUID
    ds.Modality = "MR"
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = photometric
    if pixels.ndim == 3:
        ds.NumberOfFrames = pixels.shape[0]
    ds.Rows, ds.Columns = pixels.shape[-2:]
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelRepresentation = 0
    ds.PixelData = pixels.astype(np.uint16).tobytes()
    ds.save_as(str(path), enforce_file_format=True)
    return str(path)


class TestRaster:
    def test_png_is_embedded_as_is(self, tmp_path):
        path = tmp_path / "slice.png"
        Image.new("L", (8, 6), 128).save(path)
        urls = file_to_data_urls(str(path))
        assert len(urls) == 1
        assert urls[0].startswith("data:image/png;base64,")
        assert data_url_to_pil(urls[0]).size == (8, 6)

    def test_unreadable_png_raises(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image")
        with pytest.raises(OSError):
            file_to_data_urls(str(path))

    def test_other_formats_reencoded_as_png(self, tmp_path):
        path = tmp_path / "scan.bmp"
        Image.new("RGB", (3, 3), (1, 2, 3)).save(path)
        urls = file_to_data_urls(str(path))
        assert urls[0].startswith("data:image/png;base64,")

    def test_data_url_round_trip(self):
        img = Image.new("RGB", (5, 7), (10, 20, 30))
        back = data_url_to_pil(pil_to_data_url(img))
        assert back.size == (5, 7)
        assert back.getpixel((0, 0)) == (10, 20, 30, 255)

    def test_not_a_data_url(self):
        with pytest.raises(ValueError):
            data_url_to_pil("http://example.org/a.png")


class TestDicom:
    def test_single_frame(self, tmp_path):
        pixels = np.arange(16, dtype=np.uint16).reshape(4, 4) * 100
        path = write_dicom(tmp_path / "a.dcm", pixels)
        assert is_dicom(path)
        frames = dicom_to_frames(path)
        assert len(frames) == 1
        arr = np.asarray(frames[0])
        assert arr.shape == (4, 4)
        assert arr[0, 0] < arr[3, 3]

    def test_multi_frame_gives_one_url_per_frame(self, tmp_path):
        pixels = np.stack([np.full((4, 4), v, dtype=np.uint16) for v in (0, 500, 1000)])
        pixels[:, 0, 0] = 2000
        path = write_dicom(tmp_path / "stack.dcm", pixels)
        urls = file_to_data_urls(path)
        assert len(urls) == 3
        assert all(u.startswith("data:image/png;base64,") for u in urls)

    def test_monochrome1_is_inverted(self, tmp_path):
        pixels = np.arange(16, dtype=np.uint16).reshape(4, 4) * 100
        path = write_dicom(tmp_path / "inv.dcm", pixels, photometric="MONOCHROME1")
        arr = np.asarray(dicom_to_frames(path)[0])
        assert arr[0, 0] > arr[3, 3]

    def test_png_is_not_dicom(self, tmp_path):
        path = tmp_path / "x.png"
        Image.new("L", (2, 2)).save(path)
        assert is_dicom(str(path)) is False
