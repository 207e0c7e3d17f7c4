"""CLI module for compaction-guard."""
