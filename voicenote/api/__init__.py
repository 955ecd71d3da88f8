# voicenote/api/__init__.py
# ==========================
# API Layer — VoiceNote
#
#   POST /api/v1/uploads        → host upload_local_files entry point
#   POST /api/v1/uploads/cloud  → host cloud_upload entry point
#
# Both run through the voice-message interceptor before the host logic.
