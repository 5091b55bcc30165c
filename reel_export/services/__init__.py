"""
Services Package for the Reel Exporter Application.

This package contains the "service layer": classes that each perform one
stage of the slide-to-video export, and the exporter that runs them in order.

- **Frame Renderer (`FrameRenderer`, `ImageLoader`):**
  Loads slide images and draws each slide, or the closing card, onto a
  shared Pillow canvas.

- **Capture Stream Builder (`CaptureStreamBuilder`):**
  Describes what gets recorded: the canvas at a fixed frame rate and the
  optional music or voice track.

- **Recorder (`FFmpegStreamRecorder`):**
  Negotiates an output format and pipes the held frames into FFmpeg.

- **Transcoder (`FFmpegTranscoder`):**
  Re-encodes a non-MP4 recording into MP4 on the shared FFmpeg engine.

- **Progress (`ProgressPublisher`) and Exporter (`SlideshowExporter`):**
  Run the stages, report `recording -> converting -> done` to subscribers and
  save the result.

- **Logging Service (`ExportLog`, `ErrorLog`):**
  Persistent YAML and text logs, separate from the real-time console logging.

The capability base classes in `interfaces.py` are what the exporter depends
on, so any stage can be swapped without touching the orchestration.
"""
