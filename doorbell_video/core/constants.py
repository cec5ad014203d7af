from datetime import timedelta

# Timelapse output
FRAMERATE = 2
HOURS_PER_DAY = 24
MERGE_CONCURRENCY = 2  # concurrent ffmpeg processes

# File naming
SNAPSHOT_KIND = "snap"
SNAPSHOT_EXT = "jpg"
MOTION_KIND = "motion"
MOTION_EXT = "mp4"
TIMELAPSE_PREFIX = "timelapse"
DATE_FORMAT = "%Y-%m-%d"

# Monitor
SNAPSHOT_INTERVAL = timedelta(seconds=10)
RECORDING_TIMEOUT = timedelta(seconds=120)
