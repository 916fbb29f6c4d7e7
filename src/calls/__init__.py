"""Per-call session orchestration.

One ``CallSession`` owns a single phone call: its transcript, its lifecycle
and the ASR -> LLM -> TTS pipeline that answers each inbound utterance.
"""
