"""Runboard-AI.

This package drives a remote AI coding agent on behalf of a project
dashboard: it starts, resumes and interprets long-running remote agent runs
and turns every outcome into a well-formed local ``AgentRun`` value.

High-level architecture
-----------------------

- ``runboard_ai.agent_client``:

  - ``AsyncAgentApiClient``: authenticated HTTP client for the remote agent
    API with rate limiting, retry/backoff, response caching and metrics.
  - ``AgentClientRegistry``: one client per ``(org_id, api_token)`` pair,
    owned by the application root.

- ``runboard_ai.agent_core``:

  - ``translate_run``: pure mapping from a remote run record to a local
    lifecycle state plus a new history entry.
  - ``RunPoller``: polls a remote run until it reaches a terminal status or a
    timeout elapses.
  - ``AgentRunService``: the public start/continue/confirm/modify operations.

- ``runboard_ai.core``: settings, logging and monitoring.

Typical workflow
----------------

1. Build a ``RunboardApp`` (or wire the registry and service by hand).
2. Add a project; it owns an ``AgentRun`` in ``IDLE`` state.
3. ``start_run`` with a target; apply the returned ``AgentRun`` to the project.
4. Answer a paused agent with ``continue_run``, or approve/modify a proposed
   plan with ``confirm_plan``/``modify_plan``.
"""
