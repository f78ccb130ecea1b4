"""Runner - drives one conversation turn through agents, tools and handoffs.

One call to Runner.run is one orchestrated run:

    STARTING -> AWAITING_MODEL -> DISPATCHING_TOOLS -> CONTINUING -> AWAITING_MODEL ...
                      |                  |
                      v                  v
                  COMPLETED          HANDED_OFF -> AWAITING_MODEL (new agent)

Every model round-trip counts as one turn. A run that would need more than
max_turns round-trips ends with a MAX_TURNS failure. Any error ends the run
with a failed RunResult; run() itself never raises.

A handoff is a tool call like any other. The handoff tool leaves a pending
marker in the RunContext; after the turn's tool results are folded into the
history, the runner switches the active agent and asks the new agent for the
next step. The user only sees the new agent's answer.

Example:
    runner = Runner(ClaudeClient())
    result = runner.run(triage, "I was charged twice", context=saved_context)
    print(result.output)
    saved_context = result.context.to_dict()
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Any

from agent_relay.agent.Agent import Agent
from agent_relay.agent.ChatClient import ChatClient
from agent_relay.agent.ChatTypes import ChatResponse, ToolCall
from agent_relay.config.Configuration import Configuration
from agent_relay.errors import MaxTurnsExceeded, ModelError, ToolError, ToolNotFoundError
from agent_relay.run.Callbacks import CallbackManager
from agent_relay.run.RunContext import Message, RunContext
from agent_relay.run.RunResult import FailureKind, RunResult
from agent_relay.run.ToolDispatch import ToolDispatchStrategy, ToolOutcome, choose_strategy
from agent_relay.tool.HandoffTool import HandoffTool
from agent_relay.tool.Tool import Tool
from agent_relay.tool.ToolContext import ToolContext

logger = logging.getLogger(__name__)


class RunState(StrEnum):
    STARTING = "starting"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    CONTINUING = "continuing"
    HANDED_OFF = "handed_off"
    COMPLETED = "completed"
    FAILED = "failed"


def _enter(state: RunState, agent: Agent) -> RunState:
    logger.debug("Run state %s (agent '%s')", state.value, agent.name)
    return state


class Runner:
    """Executes runs against a chat client.

    A Runner holds no per-run state and may be shared by concurrent runs.
    """

    def __init__(
        self,
        client: ChatClient,
        config: Configuration | None = None,
        callbacks: CallbackManager | None = None,
        dispatch: ToolDispatchStrategy | None = None,
    ) -> None:
        """Create a Runner.

        Args:
            client: The chat client used for every model round-trip
            config: Defaults for model, turn budget and tool parallelism
            callbacks: Lifecycle callbacks; errors they raise are logged only
            dispatch: Fixed tool dispatch strategy. By default multi-call turns
                run concurrently and single calls run inline.
        """
        self.client = client
        self.config = config or Configuration()
        self.callbacks = callbacks or CallbackManager()
        self.dispatch = dispatch

    def run(
        self,
        agent: Agent | str,
        input: str,
        context: RunContext | Mapping[str, Any] | None = None,
        registry: Mapping[str, Agent] | None = None,
        max_turns: int | None = None,
        deadline: float | None = None,
    ) -> RunResult:
        """Run the conversation starting with agent until a final answer.

        Args:
            agent: The starting agent, or its name in registry
            input: The user's message. An empty string resumes the conversation
                without adding a user message.
            context: A RunContext, a serialized context dict, or None
            registry: Agents by name, used when agent is given as a name
            max_turns: Model round-trip budget (defaults to config.max_turns)
            deadline: Absolute time.monotonic() value passed to the chat client

        Returns:
            A RunResult. Failures are captured in it, never raised.
        """
        started = time.monotonic()
        budget = max_turns if max_turns is not None else self.config.max_turns
        run_ctx: RunContext | None = None
        history_start = 0
        turns = 0
        state = RunState.STARTING

        try:
            run_ctx = RunContext.coerce(context)
            history_start = len(run_ctx.conversation_history)
            current = self._resolve_agent(agent, registry)
            run_ctx.current_agent = current.name
            if input:
                run_ctx.append_message({"role": "user", "content": input})
            logger.info("Run started with agent '%s' (max_turns=%d)", current.name, budget)

            while True:
                if turns >= budget:
                    raise MaxTurnsExceeded(budget)
                turns += 1
                state = _enter(RunState.AWAITING_MODEL, current)
                tools = current.all_tools(run_ctx)
                self.callbacks.emit_agent_thinking(current.name, input)
                response = self._complete(current, run_ctx, tools, deadline)
                run_ctx.add_usage(response.usage)

                if not response.has_tool_calls:
                    if response.has_content:
                        run_ctx.append_message(
                            {
                                "role": "assistant",
                                "content": response.content,
                                "agent_name": current.name,
                            }
                        )
                    state = _enter(RunState.COMPLETED, current)
                    logger.info(
                        "Run completed by agent '%s' after %d turn(s)", current.name, turns
                    )
                    return self._result(
                        run_ctx, input, history_start, started, turns, output=response.content
                    )

                run_ctx.append_message(self._assistant_message(current, response))
                state = _enter(RunState.DISPATCHING_TOOLS, current)
                outcomes = self._dispatch_tools(current, tools, response.tool_calls, run_ctx)
                run_ctx.extend_messages([outcome.to_message() for outcome in outcomes])

                pending = run_ctx.take_pending_handoff()
                if pending is None:
                    state = _enter(RunState.CONTINUING, current)
                    continue

                state = _enter(RunState.HANDED_OFF, current)
                logger.info(
                    "Handoff from '%s' to '%s'%s",
                    current.name,
                    pending.target.name,
                    f" ({pending.reason})" if pending.reason else "",
                )
                run_ctx.record_agent_transition(
                    current.name, pending.target.name, pending.reason
                )
                self.callbacks.emit_agent_handoff(
                    current.name, pending.target.name, pending.reason
                )
                current = pending.target
                run_ctx.current_agent = current.name

        except MaxTurnsExceeded as e:
            logger.warning("Run stopped in state %s: %s", state.value, e)
            return self._failure(
                run_ctx, input, history_start, started, turns, e, FailureKind.MAX_TURNS
            )
        except ModelError as e:
            logger.error("Model call failed in state %s: %s", state.value, e)
            return self._failure(
                run_ctx, input, history_start, started, turns, e, FailureKind.MODEL_ERROR
            )
        except Exception as e:
            logger.exception("Run failed in state %s", state.value)
            return self._failure(
                run_ctx, input, history_start, started, turns, e, FailureKind.INTERNAL_ERROR
            )

    # Steps

    @staticmethod
    def _resolve_agent(agent: Agent | str, registry: Mapping[str, Agent] | None) -> Agent:
        if isinstance(agent, Agent):
            return agent
        if registry is None or agent not in registry:
            raise KeyError(f"Unknown agent '{agent}'")
        return registry[agent]

    def _complete(
        self,
        agent: Agent,
        run_ctx: RunContext,
        tools: Sequence[Tool],
        deadline: float | None,
    ) -> ChatResponse:
        system = agent.resolve_instructions(run_ctx)
        try:
            return self.client.complete(
                system,
                run_ctx.conversation_history,
                [tool.to_metadata() for tool in tools],
                model=agent.model or self.config.default_model,
                response_schema=agent.response_schema,
                deadline=deadline,
            )
        except ModelError:
            raise
        except Exception as e:
            raise ModelError(str(e), cause=e) from e

    @staticmethod
    def _assistant_message(agent: Agent, response: ChatResponse) -> Message:
        message: Message = {
            "role": "assistant",
            "content": response.content if response.has_content else "",
            "agent_name": agent.name,
            "tool_calls": [call.to_dict() for call in response.tool_calls],
        }
        return message

    def _dispatch_tools(
        self,
        agent: Agent,
        tools: Sequence[Tool],
        calls: Sequence[ToolCall],
        run_ctx: RunContext,
    ) -> list[ToolOutcome]:
        """Execute one turn's tool calls and return outcomes in call order.

        Regular tools run first, through the dispatch strategy. Handoff calls
        then run in order until one succeeds; failed ones keep their error
        result and any after the successful one are answered as ignored
        without running.
        """
        by_name = {tool.name: tool for tool in tools}
        handoff_idx = [i for i, c in enumerate(calls) if isinstance(by_name.get(c.name), HandoffTool)]
        regular_idx = [i for i in range(len(calls)) if i not in handoff_idx]

        def execute(call: ToolCall) -> ToolOutcome:
            return self._execute_call(agent, by_name.get(call.name), call, run_ctx)

        outcomes: dict[int, ToolOutcome] = {}
        strategy = self.dispatch or choose_strategy(
            len(regular_idx), self.config.max_parallel_tools
        )
        regular_calls = [calls[i] for i in regular_idx]
        for i, outcome in zip(regular_idx, strategy.dispatch(regular_calls, execute)):
            outcomes[i] = outcome

        chosen: int | None = None
        for i in handoff_idx:
            if chosen is None:
                outcomes[i] = execute(calls[i])
                if run_ctx.pending_handoff is not None:
                    chosen = i
                continue
            outcomes[i] = ToolOutcome(
                calls[i],
                result=f"Ignored {calls[i].name}: only one transfer is allowed per turn",
            )
        if chosen is not None and chosen != handoff_idx[-1]:
            logger.warning(
                "Agent '%s' requested %d handoffs in one turn; only '%s' is used",
                agent.name,
                len(handoff_idx),
                calls[chosen].name,
            )

        return [outcomes[i] for i in range(len(calls))]

    def _execute_call(
        self,
        agent: Agent,
        tool: Tool | None,
        call: ToolCall,
        run_ctx: RunContext,
    ) -> ToolOutcome:
        """Run a single tool call. Tool failures become error outcomes."""
        self.callbacks.emit_tool_start(call.name, call.arguments)
        try:
            if tool is None:
                raise ToolNotFoundError(call.name, agent.name)
            tool_ctx = ToolContext(run_ctx, tool_call_id=call.id, agent_name=agent.name)
            outcome = ToolOutcome(call, result=tool.execute(tool_ctx, call.arguments))
        except ToolError as e:
            logger.warning("Tool '%s' failed for agent '%s': %s", call.name, agent.name, e)
            outcome = ToolOutcome(call, error=e)
        except Exception as e:
            logger.exception("Tool '%s' failed for agent '%s'", call.name, agent.name)
            outcome = ToolOutcome(call, error=e)
        self.callbacks.emit_tool_complete(call.name, outcome.content)
        return outcome

    # Results

    @staticmethod
    def _result(
        run_ctx: RunContext,
        input: str,
        history_start: int,
        started: float,
        turns: int,
        output: Any,
    ) -> RunResult:
        return RunResult(
            output=output,
            context=run_ctx,
            usage=run_ctx.usage.copy(),
            input=input,
            messages=tuple(run_ctx.conversation_history[history_start:]),
            turns=turns,
            duration=time.monotonic() - started,
        )

    @staticmethod
    def _failure(
        run_ctx: RunContext | None,
        input: str,
        history_start: int,
        started: float,
        turns: int,
        error: BaseException,
        kind: FailureKind,
    ) -> RunResult:
        if run_ctx is None:
            run_ctx = RunContext()
        run_ctx.take_pending_handoff()
        logger.debug("Run state %s (%s)", RunState.FAILED.value, kind.value)
        return RunResult(
            output=None,
            context=run_ctx,
            usage=run_ctx.usage.copy(),
            input=input,
            messages=tuple(run_ctx.conversation_history[history_start:]),
            error=error,
            failure=kind,
            turns=turns,
            duration=time.monotonic() - started,
        )
