"""
Pipeline Tests
==============

End-to-end tests for extract_thumbnail and ThumbnailPipeline.
"""

import io

import numpy as np
import pytest

from kiseki_thumb import extract_thumbnail, ThumbnailPipeline
from kiseki_thumb import pipeline as pipeline_module
from kiseki_thumb.config import PackerConfig, ReaderConfig, Settings
from kiseki_thumb.decode import image_decoder
from kiseki_thumb.errors import (
    DelimiterNotFoundError,
    DimensionOverflowError,
    ErrorKind,
    ImageDecodeError,
    NoPayloadError,
    PipelineStateError,
    StreamReadError,
)
from kiseki_thumb.models import PipelineStage


class CountingSource(io.BytesIO):
    """BytesIO recording each requested size."""

    def __init__(self, data):
        super().__init__(data)
        self.requests = []

    def read(self, size=-1):
        self.requests.append(size)
        return super().read(size)


class BrokenSource:
    def read(self, size):
        raise OSError("read failed")


class TestExtractThumbnail:
    """End-to-end scenarios."""

    def test_two_by_two(self, sample_stream):
        result = extract_thumbnail(sample_stream)
        assert result.width == 2
        assert result.height == 2
        assert result.stride == 8
        assert len(result.pixels) == 16
        assert result.has_alpha is False

    def test_padding_stays_zero(self, make_jpeg, make_container):
        result = extract_thumbnail(io.BytesIO(make_container(make_jpeg(5, 3))))
        assert result.stride == 16
        assert len(result.pixels) == 3 * 16
        for y in range(3):
            assert result.pixels[y * 16 + 15] == 0

    def test_pixels_are_bgr(self, make_jpeg, make_container):
        jpeg = make_jpeg(4, 4, color=(10, 200, 60))
        result = extract_thumbnail(io.BytesIO(make_container(jpeg)))
        pixels = result.to_array().astype(int)
        assert np.all(np.abs(pixels - np.array([10, 200, 60])) <= 4)

    def test_idempotent(self, sample_container):
        first = extract_thumbnail(io.BytesIO(sample_container))
        second = extract_thumbnail(io.BytesIO(sample_container))
        assert first == second

    def test_first_frame_only(self, make_jpeg, make_container):
        payload = make_jpeg(2, 2) + make_jpeg(6, 6)
        result = extract_thumbnail(io.BytesIO(make_container(payload)))
        assert (result.width, result.height) == (2, 2)

    def test_large_header_spans_chunks(self, make_jpeg, make_container):
        header = b"<roblox>" + b"<Item/>" * 2000
        data = make_container(make_jpeg(3, 3), header=header)
        assert len(data) > 3 * 4096
        result = extract_thumbnail(io.BytesIO(data))
        assert (result.width, result.height) == (3, 3)

    def test_reads_from_file(self, tmp_path, sample_container):
        path = tmp_path / "place.rbxl"
        path.write_bytes(sample_container)
        with open(path, "rb") as f:
            result = extract_thumbnail(f)
            assert not f.closed
        assert result.width == 2

    def test_missing_delimiter(self, sample_jpeg):
        with pytest.raises(DelimiterNotFoundError):
            extract_thumbnail(io.BytesIO(b"<roblox>" + sample_jpeg))

    def test_no_payload(self):
        with pytest.raises(NoPayloadError):
            extract_thumbnail(io.BytesIO(b"<roblox></roblox>\x00"))

    def test_payload_not_jpeg(self, make_container):
        with pytest.raises(ImageDecodeError):
            extract_thumbnail(io.BytesIO(make_container(b"\x89PNG\r\n\x1a\nnot really")))

    def test_read_failure(self):
        with pytest.raises(StreamReadError):
            extract_thumbnail(BrokenSource())

    def test_uses_configured_chunk_size(self, sample_container):
        source = CountingSource(sample_container)
        settings = Settings(reader=ReaderConfig(chunk_size=7))
        extract_thumbnail(source, settings=settings)
        assert set(source.requests) == {7}

    def test_uses_configured_ceiling(self, sample_container):
        settings = Settings(packer=PackerConfig(max_buffer_bytes=15))
        with pytest.raises(DimensionOverflowError):
            extract_thumbnail(io.BytesIO(sample_container), settings=settings)


class TestThumbnailPipeline:
    """Tests for the two-step pipeline object."""

    def test_stages_on_success(self, sample_stream, default_settings):
        pipeline = ThumbnailPipeline(default_settings)
        assert pipeline.stage is None
        pipeline.initialize(sample_stream)
        assert pipeline.stage is PipelineStage.INITIALIZED
        pipeline.get_thumbnail()
        assert pipeline.stage is PipelineStage.RESULT_PACKED
        assert pipeline.stage.is_terminal
        assert pipeline.failure is None

    def test_initialize_only_once(self, sample_stream, default_settings):
        pipeline = ThumbnailPipeline(default_settings)
        pipeline.initialize(sample_stream)
        with pytest.raises(PipelineStateError) as exc_info:
            pipeline.initialize(io.BytesIO(b""))
        assert exc_info.value.kind is ErrorKind.INVALID_STATE

    def test_requires_initialize(self, default_settings):
        with pytest.raises(PipelineStateError):
            ThumbnailPipeline(default_settings).get_thumbnail()

    def test_runs_once(self, sample_stream, default_settings):
        pipeline = ThumbnailPipeline(default_settings)
        pipeline.initialize(sample_stream)
        pipeline.get_thumbnail()
        with pytest.raises(PipelineStateError):
            pipeline.get_thumbnail()

    def test_failure_records_kind(self, default_settings):
        pipeline = ThumbnailPipeline(default_settings)
        pipeline.initialize(io.BytesIO(b"no tag"))
        with pytest.raises(DelimiterNotFoundError):
            pipeline.get_thumbnail()
        assert pipeline.stage is PipelineStage.FAILED
        assert pipeline.failure is ErrorKind.DELIMITER_NOT_FOUND

    def test_decode_failure_after_payload_located(self, make_container, default_settings):
        pipeline = ThumbnailPipeline(default_settings)
        pipeline.initialize(io.BytesIO(make_container(b"\xff\xd8garbage")))
        with pytest.raises(ImageDecodeError):
            pipeline.get_thumbnail()
        assert pipeline.failure is ErrorKind.DECODE_ERROR

    def test_pack_failure_releases_decoder(self, sample_stream, default_settings, monkeypatch):
        decoders = []
        real_decoder = pipeline_module.JpegDecoder

        def _tracking_decoder(payload):
            decoder = real_decoder(payload)
            decoders.append(decoder)
            return decoder

        def _overflow(decoded, max_buffer_bytes=None):
            raise DimensionOverflowError("too big")

        monkeypatch.setattr(pipeline_module, "JpegDecoder", _tracking_decoder)
        monkeypatch.setattr(pipeline_module, "pack", _overflow)

        pipeline = ThumbnailPipeline(default_settings)
        pipeline.initialize(sample_stream)
        with pytest.raises(DimensionOverflowError):
            pipeline.get_thumbnail()

        assert pipeline.failure is ErrorKind.DIMENSION_OVERFLOW
        assert len(decoders) == 1
        assert decoders[0].released

    def test_unexpected_read_error_marks_failed(self, default_settings):
        class _Broken:
            def read(self, size):
                raise RuntimeError("stream broke")

        pipeline = ThumbnailPipeline(default_settings)
        pipeline.initialize(_Broken())
        with pytest.raises(StreamReadError):
            pipeline.get_thumbnail()
        assert pipeline.stage is PipelineStage.FAILED
        assert pipeline.failure is ErrorKind.IO_ERROR

    def test_non_thumbnail_error_marks_failed(self, sample_stream, default_settings, monkeypatch):
        def _explode(buffer):
            raise RuntimeError("scanner bug")

        monkeypatch.setattr(pipeline_module, "locate_payload", _explode)
        pipeline = ThumbnailPipeline(default_settings)
        pipeline.initialize(sample_stream)
        with pytest.raises(RuntimeError):
            pipeline.get_thumbnail()
        assert pipeline.stage is PipelineStage.FAILED
        assert pipeline.failure is None

    def test_initialize_rejects_none(self, default_settings):
        pipeline = ThumbnailPipeline(default_settings)
        with pytest.raises(PipelineStateError):
            pipeline.initialize(None)
        assert pipeline.stage is None

    def test_ceiling_checked_before_full_decode(self, sample_stream, monkeypatch):
        def _fail(*args, **kwargs):
            raise AssertionError("full decode triggered")

        monkeypatch.setattr(image_decoder.cv2, "imdecode", _fail)
        pipeline = ThumbnailPipeline(Settings(packer=PackerConfig(max_buffer_bytes=15)))
        pipeline.initialize(sample_stream)
        with pytest.raises(DimensionOverflowError):
            pipeline.get_thumbnail()
        assert pipeline.failure is ErrorKind.DIMENSION_OVERFLOW
