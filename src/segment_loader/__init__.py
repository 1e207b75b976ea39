"""
Segmented resource downloader.

Downloads a series of numbered chunk files (e.g. streaming video segments)
one after another and concatenates them into a single local file.

    from segment_loader.download import DownloadJob, HttpChunkTransport, SegmentLoader

    job = DownloadJob(name="clip", uri="https://cdn.example.com/v/clip_001.ts")
    async with HttpChunkTransport() as transport:
        result = await SegmentLoader(transport).download(job, "output")
"""

__version__ = "1.0.0"
