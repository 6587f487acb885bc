from prometheus_client import Counter, Histogram

UPLOAD_COUNT = Counter(
    'uploads_total',
    'Upload requests by outcome',
    ['outcome']
)
UPLOAD_DURATION = Histogram(
    'upload_duration_seconds',
    'Time spent handling an upload request in seconds',
)
