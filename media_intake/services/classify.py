from ..schemas import Partition


def classify(content_type: str) -> Partition:
    # prefix match is case-sensitive; no MIME normalisation
    if content_type.startswith("image/"):
        return Partition.IMAGES
    if content_type.startswith("video/"):
        return Partition.VIDEOS
    return Partition.FILES
