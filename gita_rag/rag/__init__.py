"""Query-time answer generation: persona, prompts, parsing and orchestration."""
