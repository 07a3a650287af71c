"""Activity logging for generate and revoke runs."""

import sys
from datetime import datetime
from pathlib import Path


class ActivityLog:
    """Append-only log of key and config changes."""

    def __init__(self, path: Path):
        self.path = path

    def log_event(self, message: str, level: str = 'INFO') -> None:
        """Log an event to activity.log."""
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        entry = f'[{timestamp}] {level}: {message}\n'
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a') as f:
                f.write(entry)
        except (IOError, OSError) as e:
            print(f"Warning: Failed to log event: {e}", file=sys.stderr)
