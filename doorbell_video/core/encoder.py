import logging
from pathlib import Path

import ffmpeg

import doorbell_video.core.constants as c

logger = logging.getLogger(__name__)


class EncoderError(Exception):
    pass


class TimelapseEncoder:
    """
    Encode a glob of still images into an mp4 with a soft subtitle track using ffmpeg.
    """

    def __init__(
        self,
        pattern: str,
        subfile: Path,
        output_path: Path,
        framerate: int = c.FRAMERATE,
        label: str = "Timelapse",
    ):
        """
        Args:
            pattern: glob pattern for the input images, e.g. /dir/snap-08*.jpg
            subfile: WebVTT subtitle file muxed as mov_text
            output_path: Path to the output video file
            framerate: Frames per second for the output video
            label: Prefix for log messages
        """
        self.pattern = pattern
        self.subfile = subfile
        self.output_path = output_path
        self.framerate = framerate
        self.label = label

    def stream(self):
        images = ffmpeg.input(  # type: ignore
            self.pattern, framerate=self.framerate, pattern_type="glob"
        )
        subtitles = ffmpeg.input(str(self.subfile))  # type: ignore
        return (
            ffmpeg.output(  # type: ignore
                images,
                subtitles,
                str(self.output_path),
                **{
                    "c:s": "mov_text",
                    "metadata:s:s:0": "language=eng",
                    "disposition:s:0": "default",
                },
            )
            .global_args("-nostats", "-loglevel", "error")
            .overwrite_output()
        )

    def command(self) -> list[str]:
        """Return the full ffmpeg command line."""
        return self.stream().compile()

    def run(self) -> int:
        """
        Run ffmpeg to completion.

        Returns:
            The ffmpeg exit code
        """
        logger.debug(f"{self.label}: {' '.join(self.command())}")
        try:
            process = self.stream().run_async(quiet=True)
        except FileNotFoundError as e:
            raise EncoderError(f"{self.label}: ffmpeg executable not found") from e

        _, stderr = process.communicate()
        if process.returncode != 0:
            logger.error(
                f"{self.label}: ffmpeg exited with code {process.returncode}: "
                f"{(stderr or b'').decode(errors='replace').strip()}"
            )
        return process.returncode
