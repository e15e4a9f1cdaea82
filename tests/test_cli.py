"""Tests for the extract-narrative command line."""

import argparse
import sys

import fitz
import pytest

import extract_narrative


@pytest.fixture
def sample_pdf(tmp_path):
    path = tmp_path / "sample.pdf"
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    page.insert_text((72, 300), "Hello narrative world", fontsize=11)
    doc.save(str(path))
    doc.close()
    return path


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["extract-narrative", *argv, "--no-progress", "-v", "0"])
    try:
        extract_narrative.main()
    except SystemExit as e:
        return e.code
    return 0


def test_prints_narrative_text(monkeypatch, capsys, sample_pdf):
    assert run_cli(monkeypatch, str(sample_pdf)) == 0
    assert capsys.readouterr().out.strip() == "Hello narrative world"


def test_writes_output_file(monkeypatch, tmp_path, sample_pdf):
    out = tmp_path / "out.txt"
    assert run_cli(monkeypatch, str(sample_pdf), "-o", str(out)) == 0
    assert out.read_text(encoding="utf-8") == "Hello narrative world\n"


def test_anchor_command(monkeypatch, capsys, sample_pdf):
    assert run_cli(monkeypatch, str(sample_pdf), "--anchor", "narrative", "--page", "1") == 0
    fields = capsys.readouterr().out.strip().split("\t")
    assert fields[:3] == ["1", "page 1", "page"]
    assert "[narrative]" in fields[3]


def test_anchor_miss_exit_code(monkeypatch, sample_pdf):
    assert run_cli(monkeypatch, str(sample_pdf), "--anchor", "zebra") == 2


def test_page_range_argument():
    assert extract_narrative._parse_page_range("3-10") == (2, 9)
    assert extract_narrative._parse_page_range("4") == (3, 3)
    with pytest.raises(argparse.ArgumentTypeError):
        extract_narrative._parse_page_range("10-3")
