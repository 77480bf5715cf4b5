"""Request gate in front of the text-generation provider.

Decides per request whether to serve a cached formula, reject the request
as over a per-client or global limit, or allow one generation and record
its result:
  - Key Normalizer (normalize_input) and Output Parser (parse_generation)
  - Response Cache (TTL, optional LRU bound)
  - Sliding-window Rate Limiter (per client)
  - Daily Quota Guard (global, lazy day rollover)
  - Gate Orchestrator (FormulaGate)
"""
