"""Speech synthesis models and orchestration."""

from .models import SpeakerGender, SynthesisParameters, SynthesisRequest, VoiceInfo

__all__ = ["SpeakerGender", "SynthesisParameters", "SynthesisRequest", "VoiceInfo"]
