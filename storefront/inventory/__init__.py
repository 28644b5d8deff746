"""Per-color stock counts, owned by a single lock-guarded store."""
