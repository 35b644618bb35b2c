"""Prometheus metrics for observability."""

from prometheus_client import Counter, Histogram, Gauge, Info

# Voice pipeline metrics
mfcc_extraction_time = Histogram(
    'mfcc_extraction_seconds',
    'Time to extract the MFCC feature vector from a signal',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

embedding_extraction_time = Histogram(
    'embedding_extraction_seconds',
    'Time to map a feature vector to an embedding',
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5]
)

similarity_score = Histogram(
    'voice_similarity_score',
    'Decision (max) cosine similarity per verification',
    buckets=[-0.5, 0.0, 0.25, 0.5, 0.6, 0.7, 0.75, 0.8, 0.85, 0.9, 0.95, 1.0]
)

# Orchestrator metrics
enrollment_total = Counter(
    'voice_enrollment_total',
    'Total enrollment attempts',
    ['status']  # accepted, complete, reset, invalid_input, error
)

verification_total = Counter(
    'voice_verification_total',
    'Total verification attempts',
    ['status']  # accepted, rejected, profile_empty, incomplete, invalid_input, error
)

lock_state = Gauge(
    'voice_lock_state',
    'Voice lock state per session (1=locked, 0=unlocked)',
    ['session']
)

# Arm command metrics
arm_commands_total = Counter(
    'arm_commands_total',
    'Commands handed to the arm transport',
    ['kind', 'status']  # kind: debounced, immediate, stop; status: sent, failed, rejected
)

# System Info
app_info = Info('app', 'Application information')
app_info.info({
    'version': '1.0.0',
    'service': 'VoiceLock.ArmServer',
    'features': 'mfcc,voice_unlock,arm_relay'
})
