"""
checkin_core — agent check-in lifecycle
=======================================
Architecture: one thread, one loop, blocking transport calls.

  constants.py    → Version, build, defaults, timeouts, NOTE log level
  config.py       → Paths, logging, config load, setting parsers
  hostinfo.py     → Host facts (user, hostname, process, IPs, integrity)
  state.py        → Agent dataclass (single source of truth, Agent.new())
  policy.py       → Kill date / retry ceiling / handshake decisions
  scheduler.py    → Jittered sleep
  messages.py     → Message envelope + types
  http_client.py  → HTTP session with retry/pooling
  transport.py    → Transport protocol + HttpTransport
  jobs.py         → JobQueue (dispatch, outbound results, re-queue, control)
  orchestrator.py → CheckinOrchestrator (the loop)
  runner.py       → main() + command line
"""
