"""Tests for the PyMuPDF document source against small generated PDFs."""

import fitz
import pytest

from narrative.errors import DocumentUnavailableError
from narrative.pipeline import ExtractionConfig, NarrativePipeline
from narrative.utils.pdf_adapter import PDFAdapter, get_page_count, open_pdf


@pytest.fixture
def sample_pdf(tmp_path):
    path = tmp_path / "sample.pdf"
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    page.insert_text((72, 300), "Hello narrative world", fontsize=11)
    page = doc.new_page(width=612, height=792)
    page.insert_text((72, 400), "Second page text here", fontsize=11)
    doc.save(str(path))
    doc.close()
    return path


def test_page_runs(sample_pdf):
    with PDFAdapter(str(sample_pdf)) as pdf:
        assert pdf.page_count == 2
        geometry, runs = pdf.page_runs(0)

    assert (geometry.width, geometry.height) == (612, 792)
    assert geometry.body_font_size == pytest.approx(11, abs=0.5)
    assert [r.content.strip() for r in runs] == ["Hello narrative world"]
    run = runs[0]
    assert run.origin_x == pytest.approx(72, abs=1)
    assert run.origin_y == pytest.approx(300, abs=1)
    assert run.width > 0
    assert run.rotation == pytest.approx(0, abs=0.5)


def test_text_layer_counts_runs(sample_pdf):
    with PDFAdapter(str(sample_pdf)) as pdf:
        layer = pdf.page_model(0).text_layer
        assert len(layer) == 1
        assert layer.skipped_spans == 0


def test_render_and_dimensions(sample_pdf):
    with PDFAdapter(str(sample_pdf)) as pdf:
        assert pdf.dimensions(1) == (612, 792)
        image = pdf.render(0, scale=1.0)
        assert image.size == (612, 792)
        with pytest.raises(IndexError):
            pdf.page_runs(2)


def test_page_count(sample_pdf):
    assert get_page_count(str(sample_pdf)) == 2


def test_unavailable_documents(tmp_path, sample_pdf):
    with pytest.raises(DocumentUnavailableError):
        open_pdf(str(tmp_path / "missing.pdf"))

    garbage = tmp_path / "garbage.pdf"
    garbage.write_bytes(b"this is not a pdf")
    with pytest.raises(DocumentUnavailableError):
        PDFAdapter(str(garbage))

    locked = tmp_path / "locked.pdf"
    doc = fitz.open(str(sample_pdf))
    doc.save(
        str(locked),
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="user",
    )
    doc.close()
    with pytest.raises(DocumentUnavailableError, match="encrypted"):
        open_pdf(str(locked))


def test_build_from_pdf(sample_pdf, tmp_path):
    overlays = tmp_path / "debug"
    config = ExtractionConfig(disable_tqdm=True, debug_overlay_dir=str(overlays), render_scale=0.5)
    result = NarrativePipeline(config).build_from_pdf(str(sample_pdf))

    assert result.index.page_texts == ("Hello narrative world", "Second page text here")
    assert result.index.path == str(sample_pdf)
    assert sorted(p.name for p in overlays.iterdir()) == ["page_000.png", "page_001.png"]
