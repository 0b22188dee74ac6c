"""Post-load diagnostics run against the settled page.

This module provides the DiagnosticsRunner class. Steps run strictly in
order: wait-for, expect-element, dimension injection, element dump and
script evaluation. Only a missing expected element aborts the sequence;
every other problem is reported inline and the run continues.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import typer
from playwright.async_api import Page, Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from ..errors import AssertionFailure, DiagnosticError
from ..models.capture import DiagnosticOutcome, DiagnosticStep, ProbeOptions

logger = logging.getLogger(__name__)

DIMENSIONS_ATTRIBUTE = 'data-dimensions'

_EXISTS_JS = "sel => document.querySelector(sel) !== null"

_OUTER_HTML_JS = """
sel => {
    const el = document.querySelector(sel);
    return el ? el.outerHTML : null;
}
"""

_MEASURE_JS = """
elements => elements.map(el => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    const edges = prop => ['Top', 'Right', 'Bottom', 'Left'].map(
        side => Math.round(parseFloat(style[prop + side]) || 0)
    );
    return {
        x: Math.round(rect.left + window.scrollX),
        y: Math.round(rect.top + window.scrollY),
        w: Math.round(rect.width),
        h: Math.round(rect.height),
        margin: edges('margin'),
        padding: edges('padding')
    };
})
"""

_WRITE_DIMENSIONS_JS = """
(elements, [attribute, payloads]) => elements.forEach((el, i) => {
    if (i < payloads.length) el.setAttribute(attribute, payloads[i]);
})
"""

# The code is compiled as a single expression when it parses as one, so its
# value (awaited or not) is the result; otherwise it compiles as an async
# function body. Compilation never runs the code, so it executes once.
_EVALUATE_JS = """
async code => {
    const describe = r => {
        if (r === undefined) return { kind: 'undefined' };
        if (r === null) return { kind: 'null' };
        if (typeof r === 'object') return { kind: 'object', text: JSON.stringify(r, null, 2) };
        return { kind: typeof r, text: String(r) };
    };
    const errorText = e => (e && e.message !== undefined ? e.message : String(e));
    const AsyncFunction = Object.getPrototypeOf(async function () {}).constructor;
    const expression = code.trim().replace(/;+\\s*$/, '');

    let compiled;
    try {
        compiled = new AsyncFunction('return (' + expression + '\\n);');
    } catch (e) {
        try {
            compiled = new AsyncFunction(code);
        } catch (bodyError) {
            return { kind: 'error', text: errorText(bodyError) };
        }
    }

    try {
        return describe(await compiled());
    } catch (e) {
        return { kind: 'error', text: errorText(e) };
    }
}
"""

Number = Union[int, float]


def _number(value: Number) -> Number:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_box_edges(edges: Sequence[Number]) -> Union[Number, str]:
    """Collapse top/right/bottom/left values.

    Uniform edges become a single number, otherwise "top right bottom left".
    """
    values = [_number(v) for v in edges]
    if len(set(values)) == 1:
        return values[0]
    return ' '.join(str(v) for v in values)


def build_dimension_payload(box: Dict[str, Any]) -> str:
    """Serialize a measured box as the data-dimensions attribute value."""
    payload = {
        'x': _number(box['x']),
        'y': _number(box['y']),
        'w': _number(box['w']),
        'h': _number(box['h']),
        'margin': format_box_edges(box['margin']),
        'padding': format_box_edges(box['padding']),
    }
    return json.dumps(payload, separators=(',', ':'))


def normalize_evaluation(raw: Optional[Dict[str, Any]]) -> str:
    """Render the in-page evaluation result as report text."""
    if not raw:
        return 'undefined'

    kind = raw.get('kind')
    text = raw.get('text')

    if kind == 'error':
        return f"Error: {text}"
    if kind == 'null':
        return 'null'
    if kind == 'undefined' or text is None:
        return 'undefined'
    return text


class DiagnosticsRunner:
    """Runs the configured post-load steps in a fixed order."""

    def __init__(self, page: Page, options: ProbeOptions, echo: Callable[[str], None] = typer.echo):
        """Initialize the runner.

        Args:
            page: Settled Playwright page
            options: Invocation options naming the selectors and script
            echo: Sink for inline output
        """
        self.page = page
        self.options = options
        self.echo = echo
        self.outcomes: List[DiagnosticOutcome] = []

    async def run(self) -> List[DiagnosticOutcome]:
        """Execute every configured step.

        Raises:
            AssertionFailure: If the expected element is missing; later
                steps do not run
        """
        opts = self.options

        if opts.wait_for:
            await self.wait_for(opts.wait_for)

        if opts.expect_element:
            await self.expect_element(opts.expect_element)

        if opts.dump_dimensions:
            await self.inject_dimensions(opts.dump_dimensions)

        if opts.dump_element:
            await self.dump_element(opts.dump_element)

        if opts.eval_code:
            await self.evaluate(opts.eval_code)

        return self.outcomes

    async def wait_for(self, selector: str) -> DiagnosticOutcome:
        found = True
        try:
            await self.page.wait_for_selector(selector, timeout=self.options.timeout_ms)
        except PlaywrightTimeoutError:
            found = False
        except PlaywrightError as e:
            logger.debug(f"wait_for_selector failed: {e.message}")
            found = False

        if not found:
            self.echo(f"Warning: Element '{selector}' not found")

        return self._record(DiagnosticOutcome(step=DiagnosticStep.WAIT_FOR, selector=selector, found=found))

    async def expect_element(self, selector: str) -> DiagnosticOutcome:
        try:
            exists = await self.page.evaluate(_EXISTS_JS, selector)
        except PlaywrightError as e:
            logger.warning(f"Expect-element check failed: {e.message}")
            exists = False

        outcome = self._record(DiagnosticOutcome(
            step=DiagnosticStep.EXPECT_ELEMENT,
            selector=selector,
            found=bool(exists),
        ))
        if not exists:
            raise AssertionFailure(selector)
        return outcome

    async def inject_dimensions(self, selector: str) -> DiagnosticOutcome:
        """Write a data-dimensions attribute onto every matching element."""
        outcome = DiagnosticOutcome(step=DiagnosticStep.DUMP_DIMENSIONS, selector=selector)
        try:
            boxes = await self._page_call(
                'dump-dimensions', self.page.eval_on_selector_all(selector, _MEASURE_JS)
            )
            payloads = [build_dimension_payload(box) for box in boxes]
            if payloads:
                await self._page_call('dump-dimensions', self.page.eval_on_selector_all(
                    selector, _WRITE_DIMENSIONS_JS, [DIMENSIONS_ATTRIBUTE, payloads]
                ))
        except DiagnosticError as e:
            outcome.found = False
            self._record_error(outcome, e)
            self.echo(f"Warning: Could not add dimensions to '{selector}': {e.message}")
            return self._record(outcome)

        outcome.payloads = payloads
        outcome.found = bool(payloads)
        if not payloads:
            self.echo(f"Warning: Element '{selector}' not found")
        else:
            logger.debug(f"Added dimensions to {len(payloads)} element(s) matching {selector}")

        return self._record(outcome)

    async def dump_element(self, selector: str) -> DiagnosticOutcome:
        outcome = DiagnosticOutcome(step=DiagnosticStep.DUMP_ELEMENT, selector=selector)
        try:
            html = await self._page_call('dump-element', self.page.evaluate(_OUTER_HTML_JS, selector))
        except DiagnosticError as e:
            self._record_error(outcome, e)
            html = None

        if html:
            self.echo(f"\nElement '{selector}':")
            self.echo(html)
            self.echo('')
        else:
            self.echo(f"Warning: Element '{selector}' not found")

        outcome.found = bool(html)
        outcome.value = html
        return self._record(outcome)

    async def evaluate(self, code: str) -> DiagnosticOutcome:
        outcome = DiagnosticOutcome(step=DiagnosticStep.EVALUATE)
        try:
            raw = await self._page_call('eval', self.page.evaluate(_EVALUATE_JS, code))
        except DiagnosticError as e:
            # The page itself failed, e.g. the script navigated away
            self._record_error(outcome, e)
            self.echo(f"\nJavaScript Error: {e.message}\n")
            return self._record(outcome)

        outcome.value = normalize_evaluation(raw)
        if raw and raw.get('kind') == 'error':
            outcome.error = raw.get('text')

        self.echo('\nJavaScript Result:')
        self.echo(outcome.value)
        self.echo('')
        return self._record(outcome)

    async def _page_call(self, step: str, awaitable: Awaitable[Any]) -> Any:
        """Await a page operation, translating Playwright failures.

        Raises:
            DiagnosticError: If the page operation failed
        """
        try:
            return await awaitable
        except PlaywrightError as e:
            raise DiagnosticError(step, e.message, e) from e

    def _record_error(self, outcome: DiagnosticOutcome, error: DiagnosticError) -> None:
        logger.warning(str(error))
        outcome.error = error.message

    def _record(self, outcome: DiagnosticOutcome) -> DiagnosticOutcome:
        self.outcomes.append(outcome)
        return outcome
