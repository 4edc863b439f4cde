"""Exceptions raised by the metadata pipeline"""


class GalleryError(Exception):
    """Base class for gallery errors"""


class MediaRejected(GalleryError):
    """The file must not enter the image pipeline at all"""


class VideoFileError(MediaRejected):
    """A video container saved under an image name"""

    def __init__(self, kind, filename=None):
        self.kind = kind
        self.filename = filename
        target = filename or 'file'
        super().__init__(f'skipping video file ({kind}): {target}')
