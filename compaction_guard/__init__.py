"""compaction-guard - keeps task context alive across memory compaction."""

__version__ = "0.1.0"
__logo__ = "🛡️"
