"""Tests for the tool call executor and result rendering."""

from __future__ import annotations

import asyncio
import json

from mcpgate.tools.base import (
    ImagePart,
    ResourcePart,
    TextPart,
    ToolCallResult,
    ToolInvocation,
    ToolSchema,
)
from mcpgate.tools.executor import (
    EMPTY_RESULT,
    ERROR_PREFIX,
    FAILURE_PREFIX,
    UNREADABLE_RESULT,
    ToolCallExecutor,
    is_error_text,
    render_result,
    to_function_descriptor,
)
from tests.fixtures.sessions import FakeToolSession, make_tool

# ── Function descriptors ─────────────────────────────────────


class TestFunctionDescriptor:
    def test_full_schema(self) -> None:
        tool = ToolSchema(
            name="forecast",
            description="Weather forecast",
            input_schema={
                "type": "object",
                "properties": {"city": {"type": "string"}},
                "required": ["city"],
            },
        )

        assert to_function_descriptor(tool) == {
            "type": "function",
            "function": {
                "name": "forecast",
                "description": "Weather forecast",
                "parameters": {
                    "type": "object",
                    "properties": {"city": {"type": "string"}},
                    "required": ["city"],
                },
            },
        }

    def test_defaults(self) -> None:
        descriptor = to_function_descriptor(ToolSchema(name="ping"))
        fn = descriptor["function"]
        assert fn["description"] == "MCP tool: ping"
        assert fn["parameters"] == {"type": "object", "properties": {}, "required": []}


# ── Rendering ────────────────────────────────────────────────


class TestRenderResult:
    def test_empty_content(self) -> None:
        assert render_result(ToolCallResult()) == EMPTY_RESULT

    def test_text_parts_joined(self) -> None:
        result = ToolCallResult(content=(TextPart(text="one"), TextPart(text="two")))
        assert render_result(result) == "one\n\ntwo"

    def test_resource_and_image(self) -> None:
        result = ToolCallResult(
            content=(
                TextPart(text="see attached"),
                ResourcePart(uri="file:///a.txt", text="file body"),
                ImagePart(mime_type="image/png", data="aGVsbG8="),
            )
        )
        rendered = render_result(result)
        assert rendered == "see attached\n\n[resource] file body\n\n[image: image/png]"
        assert "aGVsbG8=" not in rendered

    def test_no_readable_parts(self) -> None:
        result = ToolCallResult(
            content=(TextPart(text=""), ResourcePart(uri="file:///bin", text=None))
        )
        assert render_result(result) == UNREADABLE_RESULT

    def test_is_error_text(self) -> None:
        assert is_error_text(f"{ERROR_PREFIX} boom")
        assert is_error_text(f"{FAILURE_PREFIX} boom")
        assert not is_error_text("all good")


# ── Execution ────────────────────────────────────────────────


def _echo(args):
    return json.dumps(args, separators=(",", ":"))


async def _executor(make_registry, make_server_config, sessions):
    registry = make_registry(sessions)
    await registry.initialize([make_server_config(name) for name in sessions])
    return ToolCallExecutor(registry), registry


class TestExecute:
    async def test_echo_round_trip(self, make_registry, make_server_config) -> None:
        executor, registry = await _executor(
            make_registry,
            make_server_config,
            {"echo": FakeToolSession([make_tool("echo", x="integer")], {"echo": _echo})},
        )

        outcomes = await executor.execute_batch(
            [ToolInvocation(call_id="c1", tool_name="echo", arguments_json='{"x":1}')]
        )

        assert len(outcomes) == 1
        assert outcomes[0].call_id == "c1"
        assert outcomes[0].is_error is False
        assert '"x":1' in outcomes[0].text
        await registry.shutdown()

    async def test_unknown_and_known_keep_order(
        self, make_registry, make_server_config
    ) -> None:
        executor, registry = await _executor(
            make_registry,
            make_server_config,
            {"echo": FakeToolSession([make_tool("echo")], {"echo": _echo})},
        )

        outcomes = await executor.execute_batch(
            [
                ToolInvocation(call_id="bad", tool_name="nope", arguments_json="{}"),
                ToolInvocation(call_id="good", tool_name="echo", arguments_json='{"a":2}'),
            ]
        )

        assert [o.call_id for o in outcomes] == ["bad", "good"]
        assert outcomes[0].is_error is True
        assert outcomes[0].text.startswith(FAILURE_PREFIX)
        assert "nope" in outcomes[0].text
        assert outcomes[1].is_error is False
        await registry.shutdown()

    async def test_malformed_arguments(self, make_registry, make_server_config) -> None:
        session = FakeToolSession([make_tool("echo")], {"echo": _echo})
        executor, registry = await _executor(
            make_registry, make_server_config, {"echo": session}
        )

        outcomes = await executor.execute_batch(
            [
                ToolInvocation(call_id="c1", tool_name="echo", arguments_json="{not json"),
                ToolInvocation(call_id="c2", tool_name="echo", arguments_json="[1, 2]"),
            ]
        )

        assert all(o.is_error for o in outcomes)
        assert "Invalid tool arguments JSON" in outcomes[0].text
        assert "must be a JSON object" in outcomes[1].text
        assert session.call_log == []
        await registry.shutdown()

    async def test_blank_arguments_mean_empty(
        self, make_registry, make_server_config
    ) -> None:
        session = FakeToolSession([make_tool("echo")], {"echo": _echo})
        executor, registry = await _executor(
            make_registry, make_server_config, {"echo": session}
        )

        outcome = await executor.execute(
            ToolInvocation(call_id="c1", tool_name="echo", arguments_json="  ")
        )

        assert outcome.text == "{}"
        assert session.call_log[0]["arguments"] == {}
        await registry.shutdown()

    async def test_provider_error_prefixed(
        self, make_registry, make_server_config
    ) -> None:
        from tests.fixtures.sessions import text_result

        session = FakeToolSession(
            [make_tool("lookup")],
            {"lookup": lambda args: text_result("record not found", is_error=True)},
        )
        executor, registry = await _executor(
            make_registry, make_server_config, {"db": session}
        )

        outcome = await executor.execute(
            ToolInvocation(call_id="c1", tool_name="lookup")
        )

        assert outcome.is_error is True
        assert outcome.text == f"{ERROR_PREFIX} record not found"
        await registry.shutdown()

    async def test_transport_failure_captured(
        self, make_registry, make_server_config
    ) -> None:
        def _boom(args):
            raise BrokenPipeError("server went away")

        executor, registry = await _executor(
            make_registry,
            make_server_config,
            {"flaky": FakeToolSession([make_tool("flaky")], {"flaky": _boom})},
        )

        outcome = await executor.execute(ToolInvocation(call_id="c1", tool_name="flaky"))

        assert outcome.is_error is True
        assert outcome.text == f"{FAILURE_PREFIX} server went away"
        await registry.shutdown()

    async def test_empty_batch(self, make_registry) -> None:
        executor = ToolCallExecutor(make_registry({}))
        assert await executor.execute_batch([]) == []

    async def test_batch_runs_concurrently(
        self, make_registry, make_server_config
    ) -> None:
        running = 0
        peak = 0

        async def _slow(args):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1
            return str(args["n"])

        executor, registry = await _executor(
            make_registry,
            make_server_config,
            {"slow": FakeToolSession([make_tool("slow")], {"slow": _slow})},
        )

        outcomes = await executor.execute_batch(
            [
                ToolInvocation(
                    call_id=f"c{i}", tool_name="slow", arguments_json=json.dumps({"n": i})
                )
                for i in range(3)
            ]
        )

        assert [o.text for o in outcomes] == ["0", "1", "2"]
        assert peak == 3
        await registry.shutdown()


# ── Catalog ──────────────────────────────────────────────────


class TestFunctionCatalog:
    async def test_one_entry_per_name(self, make_registry, make_server_config) -> None:
        executor, registry = await _executor(
            make_registry,
            make_server_config,
            {
                "first": FakeToolSession([make_tool("search", "first search")]),
                "second": FakeToolSession(
                    [make_tool("search", "second search"), make_tool("fetch")]
                ),
            },
        )

        catalog = executor.function_catalog()

        names = [f["function"]["name"] for f in catalog]
        assert names == ["search", "fetch"]
        assert catalog[0]["function"]["description"] == "first search"
        await registry.shutdown()

    async def test_empty_registry(self, make_registry) -> None:
        executor = ToolCallExecutor(make_registry({}))
        assert executor.function_catalog() == []
