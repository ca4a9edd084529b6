"""
Tests for the Flask app and the console entry point.
"""
import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from app import create_app
from cli import main
from config.settings import Settings, TickerIdentifierMap
from errors import MissingMappingError

SAMPLE_DIR = Path(__file__).resolve().parent.parent / "sample_data"

TICKER_MAP = TickerIdentifierMap(identifiers={
    "VUSA": "IE00B3XXRP09",
    "EQQQ": "IE0032077012",
    "IWDA": "IE00B4L5Y983",
})


class TestEndpoints(unittest.TestCase):
    """Test Flask API endpoints."""

    def setUp(self):
        self.app = create_app(Settings(ticker_map=TICKER_MAP))
        self.app.config["TESTING"] = True
        self.client = self.app.test_client()

    def upload(self, content: bytes, filename="statement.csv"):
        return self.client.post(
            "/positions",
            data={"file": (io.BytesIO(content), filename)},
            content_type="multipart/form-data",
        )

    def test_health_endpoint(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["status"], "healthy")

    def test_positions_for_sample_statement(self):
        response = self.upload((SAMPLE_DIR / "statement.csv").read_bytes())
        self.assertEqual(response.status_code, 200)

        data = response.get_json()
        positions = {p["ticker"]: p for p in data["positions"]}
        self.assertEqual(set(positions), {"VUSA", "IWDA"})
        self.assertEqual(positions["VUSA"]["average_price"], "52.00")
        self.assertEqual(positions["IWDA"]["remaining_quantity"], "0.80000000")
        self.assertEqual(data["summary"]["total_injected"], "1250.00")
        self.assertEqual(data["summary"]["total_fees"], "0.50")
        self.assertEqual(data["extraction"]["records_emitted"], 10)

    def test_missing_file(self):
        response = self.client.post("/positions", data={}, content_type="multipart/form-data")
        self.assertEqual(response.status_code, 400)

    def test_non_csv_upload(self):
        response = self.upload(b"tickers: {}", filename="tickers.yaml")
        self.assertEqual(response.status_code, 400)

    def test_parse_failure(self):
        content = (
            b"Ticker,Type,Quantity,Price per share,Total Amount\n"
            b"VUSA,BUY - MARKET,10,EUR 50.00,EUR fifty\n"
        )
        response = self.upload(content)
        self.assertEqual(response.status_code, 400)
        data = response.get_json()
        self.assertEqual(data["line_number"], 2)
        self.assertEqual(data["field"], "Total Amount")

    def test_mapping_gap(self):
        content = (
            b"Ticker,Type,Quantity,Price per share,Total Amount\n"
            b"ABCD,BUY - MARKET,1,EUR 5,EUR 5\n"
            b"WXYZ,BUY - MARKET,1,EUR 5,EUR 5\n"
        )
        response = self.upload(content)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()["missing_tickers"], ["ABCD", "WXYZ"])

    def test_malformed_input(self):
        content = b"Ticker,Type,Quantity,Total Amount\nVUSA,SELL - MARKET,1,EUR 5\n"
        response = self.upload(content)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.get_json()["ticker"], "VUSA")

    def test_empty_mapping_refuses_startup(self):
        with self.assertRaises(MissingMappingError):
            create_app(Settings())


class TestCommandLine(unittest.TestCase):
    """Console entry point output and exit codes."""

    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp_dir.name)
        self.documents = self.root / "documents"
        self.documents.mkdir()
        self.env_file = self.root / ".env"
        self.env_file.write_text(
            "TICKER_VUSA=IE00B3XXRP09\nTICKER_IWDA=IE00B4L5Y983\n"
        )
        self.environ = mock.patch.dict(os.environ, {}, clear=True)
        self.environ.start()

    def tearDown(self):
        self.environ.stop()
        self.tmp_dir.cleanup()

    def run_cli(self, *args):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(["--env-file", str(self.env_file), *args])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_report(self):
        shutil.copy(SAMPLE_DIR / "statement.csv", self.documents / "statement.csv")
        code, out, _ = self.run_cli("--documents", str(self.documents))
        self.assertEqual(code, 0)
        self.assertIn("IE00B3XXRP09 - 8.00000000 - 52.00 EUR", out)
        self.assertIn("Net contributions:   715.00 EUR", out)

    def test_json_report(self):
        shutil.copy(SAMPLE_DIR / "statement.csv", self.documents / "statement.csv")
        code, out, _ = self.run_cli("--documents", str(self.documents), "--json")
        self.assertEqual(code, 0)
        self.assertIn('"average_price": "90.13"', out)

    def test_empty_mapping_before_file_lookup(self):
        self.env_file.write_text("")
        code, _, err = self.run_cli("--documents", str(self.root / "missing"))
        self.assertEqual(code, 2)
        self.assertIn("No ticker mapping found", err)

    def test_missing_statement(self):
        code, _, err = self.run_cli("--documents", str(self.documents))
        self.assertEqual(code, 3)
        self.assertIn("No .csv file found", err)

    def test_mapping_gap_lists_tickers(self):
        self.env_file.write_text("TICKER_VUSA=IE00B3XXRP09\n")
        shutil.copy(SAMPLE_DIR / "statement.csv", self.documents / "statement.csv")
        code, _, err = self.run_cli("--documents", str(self.documents))
        self.assertEqual(code, 4)
        self.assertIn("TICKER_IWDA=<ISIN_CODE>", err)
        self.assertNotIn("TICKER_EQQQ", err)

    def test_parse_failure(self):
        (self.documents / "statement.csv").write_text(
            "Ticker,Type,Total Amount\nVUSA,DIVIDEND,EUR ???\n"
        )
        code, _, err = self.run_cli("--documents", str(self.documents))
        self.assertEqual(code, 5)
        self.assertIn("Line 2", err)

    def test_malformed_input(self):
        (self.documents / "statement.csv").write_text(
            "Ticker,Type,Quantity,Total Amount\nVUSA,SELL - MARKET,1,EUR 5\n"
        )
        code, _, err = self.run_cli("--documents", str(self.documents))
        self.assertEqual(code, 6)
        self.assertIn("VUSA", err)

    def test_invalid_utf8_statement(self):
        (self.documents / "statement.csv").write_bytes(
            b"Ticker,Type,Total Amount\nVUSA,DIVIDEND,\xff\xfe\n"
        )
        code, _, err = self.run_cli("--documents", str(self.documents))
        self.assertEqual(code, 7)
        self.assertIn("not valid UTF-8", err)

    def test_broken_mapping_file(self):
        mapping = self.root / "tickers.yaml"
        mapping.write_text("tickers: [unclosed\n")
        code, _, err = self.run_cli(
            "--documents", str(self.documents), "--mapping", str(mapping)
        )
        self.assertEqual(code, 2)
        self.assertIn("not valid YAML", err)


if __name__ == "__main__":
    unittest.main()
