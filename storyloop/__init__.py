"""Terminal adventure driven by a local LLM.

One game turn:
  1. The player presses `g` (continue) or a digit (pick an option).
  2. A prompt is built from the story so far plus the chosen option.
  3. The prompt is sent to Ollama on a background worker, with the
     StoryTurn JSON schema as the required output format.
  4. The foreground loop blocks until the result is ready, then applies the
     story segment, health and options to the narrative store in one step.
  5. The next frame is rendered: story panel, health bar, numbered options.

Modules:
  models   — pydantic wire schema, results, state snapshot
  config   — fixed deployment settings
  state    — the lock-guarded narrative store
  prompts  — Handlebars prompt templates
  llm      — Ollama HTTP client
  sync     — background dispatch / blocking wait
  render   — display model and rich panel
  keys     — key → command mapping and raw key reader
  game     — the control loop and entry point
"""
