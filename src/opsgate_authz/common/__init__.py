"""Cross-cutting helpers (logging, schemas, clocks)."""
