"""Unit tests for post-load diagnostics."""

import json
import pytest

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from routeprobe.capture.diagnostics import (
    DiagnosticsRunner,
    build_dimension_payload,
    format_box_edges,
    normalize_evaluation,
    _WRITE_DIMENSIONS_JS,
)
from routeprobe.errors import AssertionFailure
from routeprobe.models.capture import DiagnosticStep, ProbeOptions


def _box(margin, padding=(0, 0, 0, 0)):
    return {'x': 8, 'y': 16, 'w': 300, 'h': 40, 'margin': list(margin), 'padding': list(padding)}


class TestDimensionFormatting:
    """Tests for the data-dimensions payload."""

    def test_uniform_edges_collapse(self):
        assert format_box_edges([10, 10, 10, 10]) == 10
        assert format_box_edges([0.0, 0.0, 0.0, 0.0]) == 0

    def test_mixed_edges_listed(self):
        assert format_box_edges([10, 20, 10, 5]) == "10 20 10 5"

    def test_uniform_margin_payload(self):
        payload = build_dimension_payload(_box((10, 10, 10, 10)))

        assert '"margin":10' in payload
        assert json.loads(payload) == {'x': 8, 'y': 16, 'w': 300, 'h': 40, 'margin': 10, 'padding': 0}

    def test_mixed_margin_payload(self):
        payload = build_dimension_payload(_box((10, 20, 10, 5), (4, 8, 4, 8)))

        assert '"margin":"10 20 10 5"' in payload
        assert '"padding":"4 8 4 8"' in payload


class TestNormalizeEvaluation:
    """Tests for evaluation result rendering."""

    @pytest.mark.parametrize("raw,expected", [
        ({'kind': 'string', 'text': 'Dashboard'}, 'Dashboard'),
        ({'kind': 'number', 'text': '3'}, '3'),
        ({'kind': 'object', 'text': '{\n  "a": 1\n}'}, '{\n  "a": 1\n}'),
        ({'kind': 'null'}, 'null'),
        ({'kind': 'undefined'}, 'undefined'),
        (None, 'undefined'),
        ({'kind': 'error', 'text': 'x is not defined'}, 'Error: x is not defined'),
    ])
    def test_rendering(self, raw, expected):
        assert normalize_evaluation(raw) == expected


class TestDiagnosticsRunner:
    """Tests for DiagnosticsRunner step execution."""

    def _runner(self, page, lines, **option_values):
        options = ProbeOptions.build(route="/", **option_values)
        return DiagnosticsRunner(page, options, echo=lines.append)

    @pytest.mark.asyncio
    async def test_no_steps_configured(self, mock_page, output_lines):
        outcomes = await self._runner(mock_page, output_lines).run()

        assert outcomes == []
        assert output_lines == []

    @pytest.mark.asyncio
    async def test_wait_for_timeout_is_warning(self, mock_page, output_lines):
        mock_page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")
        mock_page.evaluate.return_value = "<p>ok</p>"
        runner = self._runner(mock_page, output_lines, wait_for="#late", dump_element="p")

        outcomes = await runner.run()

        assert output_lines[0] == "Warning: Element '#late' not found"
        assert outcomes[0].step == DiagnosticStep.WAIT_FOR
        assert outcomes[0].found is False
        # Later steps still run
        assert outcomes[1].step == DiagnosticStep.DUMP_ELEMENT

    @pytest.mark.asyncio
    async def test_wait_for_uses_timeout(self, mock_page, output_lines):
        runner = self._runner(mock_page, output_lines, wait_for=".ready", timeout_ms=8000)

        outcomes = await runner.run()

        mock_page.wait_for_selector.assert_awaited_once_with(".ready", timeout=8000)
        assert outcomes[0].found is True
        assert output_lines == []

    @pytest.mark.asyncio
    async def test_expect_element_failure_stops_sequence(self, mock_page, output_lines):
        mock_page.evaluate.return_value = False
        runner = self._runner(
            mock_page, output_lines,
            expect_element="#app", dump_dimensions=".card", dump_element="#app", eval_code="1 + 1",
        )

        with pytest.raises(AssertionFailure, match="Expected element '#app' not found"):
            await runner.run()

        assert mock_page.evaluate.await_count == 1
        mock_page.eval_on_selector_all.assert_not_awaited()
        assert runner.outcomes[-1].found is False

    @pytest.mark.asyncio
    async def test_expect_element_present(self, mock_page, output_lines):
        mock_page.evaluate.return_value = True
        outcomes = await self._runner(mock_page, output_lines, expect_element="#app").run()

        assert outcomes[0].found is True

    @pytest.mark.asyncio
    async def test_dimensions_written_to_each_match(self, mock_page, output_lines):
        mock_page.eval_on_selector_all.side_effect = [
            [_box((10, 10, 10, 10)), _box((10, 20, 10, 5))],
            None,
        ]
        runner = self._runner(mock_page, output_lines, dump_dimensions=".card")

        outcomes = await runner.run()

        payloads = outcomes[0].payloads
        assert len(payloads) == 2
        assert '"margin":10' in payloads[0]
        assert '"margin":"10 20 10 5"' in payloads[1]
        write_call = mock_page.eval_on_selector_all.await_args_list[1]
        assert write_call.args == (".card", _WRITE_DIMENSIONS_JS, ['data-dimensions', payloads])

    @pytest.mark.asyncio
    async def test_dimensions_no_match(self, mock_page, output_lines):
        mock_page.eval_on_selector_all.return_value = []
        outcomes = await self._runner(mock_page, output_lines, dump_dimensions=".missing").run()

        assert outcomes[0].found is False
        assert output_lines == ["Warning: Element '.missing' not found"]
        assert mock_page.eval_on_selector_all.await_count == 1

    @pytest.mark.asyncio
    async def test_dimensions_invalid_selector(self, mock_page, output_lines):
        mock_page.eval_on_selector_all.side_effect = PlaywrightError("Unexpected token")
        outcomes = await self._runner(mock_page, output_lines, dump_dimensions="[[").run()

        assert outcomes[0].error == "Unexpected token"
        assert output_lines[0].startswith("Warning: Could not add dimensions to '[['")

    @pytest.mark.asyncio
    async def test_dump_element(self, mock_page, output_lines):
        mock_page.evaluate.return_value = '<nav id="menu"></nav>'
        await self._runner(mock_page, output_lines, dump_element="#menu").run()

        assert output_lines == ["\nElement '#menu':", '<nav id="menu"></nav>', '']

    @pytest.mark.asyncio
    async def test_dump_element_missing(self, mock_page, output_lines):
        mock_page.evaluate.return_value = None
        await self._runner(mock_page, output_lines, dump_element="#menu").run()

        assert output_lines == ["Warning: Element '#menu' not found"]

    @pytest.mark.asyncio
    async def test_dump_element_page_failure(self, mock_page, output_lines):
        mock_page.evaluate.side_effect = PlaywrightError("Execution context was destroyed")
        outcomes = await self._runner(mock_page, output_lines, dump_element="#menu").run()

        assert outcomes[0].found is False
        assert outcomes[0].error == "Execution context was destroyed"
        assert output_lines == ["Warning: Element '#menu' not found"]

    @pytest.mark.asyncio
    async def test_evaluate_result(self, mock_page, output_lines):
        mock_page.evaluate.return_value = {'kind': 'string', 'text': 'My Page'}
        outcomes = await self._runner(mock_page, output_lines, eval_code="document.title").run()

        assert outcomes[0].value == 'My Page'
        assert output_lines == ['\nJavaScript Result:', 'My Page', '']

    @pytest.mark.asyncio
    async def test_evaluate_thrown_error(self, mock_page, output_lines):
        mock_page.evaluate.return_value = {'kind': 'error', 'text': 'boom'}
        outcomes = await self._runner(mock_page, output_lines, eval_code="throw new Error('boom')").run()

        assert outcomes[0].value == 'Error: boom'
        assert outcomes[0].error == 'boom'
        assert output_lines[1] == 'Error: boom'

    @pytest.mark.asyncio
    async def test_evaluate_page_failure(self, mock_page, output_lines):
        mock_page.evaluate.side_effect = PlaywrightError("Execution context was destroyed")
        outcomes = await self._runner(mock_page, output_lines, eval_code="location.reload()").run()

        assert outcomes[0].error == "Execution context was destroyed"
        assert output_lines == ["\nJavaScript Error: Execution context was destroyed\n"]

    @pytest.mark.asyncio
    async def test_steps_run_in_order(self, mock_page, output_lines):
        mock_page.evaluate.side_effect = [True, '<main></main>', {'kind': 'number', 'text': '2'}]
        mock_page.eval_on_selector_all.side_effect = [[_box((0, 0, 0, 0))], None]
        runner = self._runner(
            mock_page, output_lines,
            wait_for="main", expect_element="main", dump_dimensions="main",
            dump_element="main", eval_code="1 + 1",
        )

        outcomes = await runner.run()

        assert [o.step for o in outcomes] == [
            DiagnosticStep.WAIT_FOR,
            DiagnosticStep.EXPECT_ELEMENT,
            DiagnosticStep.DUMP_DIMENSIONS,
            DiagnosticStep.DUMP_ELEMENT,
            DiagnosticStep.EVALUATE,
        ]
