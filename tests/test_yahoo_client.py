import unittest
from unittest import mock

import requests

from quote_poller.data.clients import NoDataError, ProviderUnavailableError
from quote_poller.data.polling import PollLoop
from quote_poller.data.yahoo_client import YahooQuoteClient


def chart_payload(timestamps, opens, highs, lows, closes, volumes, adjcloses=None):
    indicators = {"quote": [{"open": opens, "high": highs, "low": lows, "close": closes, "volume": volumes}]}
    if adjcloses is not None:
        indicators["adjclose"] = [{"adjclose": adjcloses}]
    return {
        "chart": {
            "result": [{"meta": {"symbol": "AAPL"}, "timestamp": timestamps, "indicators": indicators}],
            "error": None,
        }
    }


def make_response(payload=None, status_code=200):
    response = mock.Mock(status_code=status_code)
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


class YahooQuoteClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock()
        self.session.headers = {}
        self.client = YahooQuoteClient(session=self.session)

    def test_returns_latest_quote_unmodified(self) -> None:
        payload = chart_payload(
            timestamps=[1000, 2000],
            opens=[1.0, 189.33000183105469],
            highs=[2.0, 190.5],
            lows=[0.5, 188.1199951171875],
            closes=[1.5, 189.91000366210938],
            volumes=[10, 52164500],
            adjcloses=[1.4, 189.6784210205078],
        )
        self.session.get.return_value = make_response(payload)

        result = self.client.fetch("AAPL")

        self.assertTrue(result.ok)
        record = result.record
        self.assertEqual("AAPL", record.symbol)
        self.assertEqual(2000, record.timestamp)
        self.assertEqual(189.33000183105469, record.open)
        self.assertEqual(189.91000366210938, record.close)
        self.assertEqual(189.6784210205078, record.adjclose)
        self.assertEqual(190.5, record.high)
        self.assertEqual(188.1199951171875, record.low)
        self.assertEqual(52164500, record.volume)
        self.session.get.assert_called_once_with(
            "https://query1.finance.yahoo.com/v8/finance/chart/AAPL",
            params={"interval": "1d", "range": "1mo"},
            timeout=10.0,
        )

    def test_sets_user_agent_header(self) -> None:
        self.assertIn("User-Agent", self.session.headers)

    def test_skips_incomplete_trailing_bar(self) -> None:
        payload = chart_payload(
            timestamps=[1000, 2000],
            opens=[1.0, 2.0],
            highs=[1.5, None],
            lows=[0.5, 1.5],
            closes=[1.2, 2.2],
            volumes=[100, 200],
            adjcloses=[1.1, 2.1],
        )
        self.session.get.return_value = make_response(payload)

        result = self.client.fetch("AAPL")

        self.assertTrue(result.ok)
        self.assertEqual(1000, result.record.timestamp)
        self.assertEqual(1.1, result.record.adjclose)

    def test_adjclose_falls_back_to_close(self) -> None:
        payload = chart_payload([1000], [1.0], [2.0], [0.5], [1.5], [10])
        self.session.get.return_value = make_response(payload)

        result = self.client.fetch("EURUSD=X")

        self.assertTrue(result.ok)
        self.assertEqual(1.5, result.record.adjclose)

    def test_no_complete_bars_is_no_data(self) -> None:
        payload = chart_payload([1000], [None], [None], [None], [None], [None], [None])
        self.session.get.return_value = make_response(payload)

        result = self.client.fetch("AAPL")

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, NoDataError)
        self.assertEqual("AAPL", result.error.symbol)

    def test_empty_result_is_no_data(self) -> None:
        self.session.get.return_value = make_response({"chart": {"result": [], "error": None}})

        result = self.client.fetch("AAPL")

        self.assertIsInstance(result.error, NoDataError)

    def test_not_found_is_no_data(self) -> None:
        payload = {
            "chart": {
                "result": None,
                "error": {"code": "Not Found", "description": "No data found, symbol may be delisted"},
            }
        }
        self.session.get.return_value = make_response(payload, status_code=404)

        result = self.client.fetch("NOPE")

        self.assertIsInstance(result.error, NoDataError)
        self.assertIn("symbol may be delisted", str(result.error))

    def test_connection_error_is_provider_unavailable(self) -> None:
        cause = requests.ConnectionError("connection refused")
        self.session.get.side_effect = cause

        result = self.client.fetch("AAPL")

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, ProviderUnavailableError)
        self.assertIs(cause, result.error.cause)

    def test_server_error_is_provider_unavailable(self) -> None:
        self.session.get.return_value = make_response({}, status_code=503)

        result = self.client.fetch("AAPL")

        self.assertIsInstance(result.error, ProviderUnavailableError)
        self.assertIn("503", str(result.error))

    def test_malformed_json_is_provider_unavailable(self) -> None:
        response = make_response()
        response.json.side_effect = ValueError("Expecting value")
        self.session.get.return_value = response

        result = self.client.fetch("AAPL")

        self.assertIsInstance(result.error, ProviderUnavailableError)

    def test_malformed_chart_shapes_are_no_data(self) -> None:
        payloads = [
            {"chart": "oops"},
            {"chart": {"result": [None]}},
            {"chart": {"result": {"x": 1}}},
            {"chart": {"result": [{"timestamp": [1000], "indicators": "none"}]}},
            {"chart": {"result": [{"timestamp": 1000, "indicators": {"quote": [{"close": [1.0]}]}}]}},
            {"chart": {"result": [{"timestamp": [1000], "indicators": {"quote": [None], "adjclose": "x"}}]}},
            {"chart": {"result": [{"timestamp": [1000], "indicators": {"quote": [{"close": 1.0}]}}]}},
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                self.session.get.return_value = make_response(payload)

                result = self.client.fetch("BAD")

                self.assertFalse(result.ok)
                self.assertIsInstance(result.error, NoDataError)
                self.assertEqual("BAD", result.error.symbol)

    def test_infinite_volume_bar_is_skipped(self) -> None:
        payload = chart_payload(
            timestamps=[1000, 2000],
            opens=[1.0, 2.0],
            highs=[1.5, 2.5],
            lows=[0.5, 1.5],
            closes=[1.2, 2.2],
            volumes=[100, float("inf")],
            adjcloses=[1.2, 2.2],
        )
        self.session.get.return_value = make_response(payload)

        result = self.client.fetch("AAPL")

        self.assertTrue(result.ok)
        self.assertEqual(1000, result.record.timestamp)

    def test_not_found_with_non_object_body_is_no_data(self) -> None:
        self.session.get.return_value = make_response(["not", "an", "object"], status_code=404)

        result = self.client.fetch("NOPE")

        self.assertIsInstance(result.error, NoDataError)

    def test_malformed_symbol_does_not_stop_cycle(self) -> None:
        good = chart_payload([1000], [1.0], [2.0], [0.5], [1.5], [10], [1.5])
        self.session.get.side_effect = [make_response({"chart": {"result": [None]}}), make_response(good)]
        writer = mock.Mock()
        loop = PollLoop(self.client, writer, ["BAD", "GOOD"], "out.csv", delay=0, scheduler=mock.Mock())

        with self.assertLogs("quote_poller.data.polling", level="WARNING"):
            self.assertEqual(1, loop.run())

        batch, destination = writer.write.call_args[0]
        self.assertEqual(["GOOD"], [record.symbol for record in batch])
        self.assertEqual("out.csv", destination)

    def test_close_releases_session(self) -> None:
        self.client.close()
        self.session.close.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
