"""HypoTrack: interactive editor for hypothetical storm tracks."""

TITLE = "HypoTrack"
VERSION = "1.1.0"
