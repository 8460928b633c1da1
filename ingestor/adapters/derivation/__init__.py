from ingestor.adapters.derivation.openai_http import OpenAICompatibleDerivation, UnavailableDerivation

__all__ = ["OpenAICompatibleDerivation", "UnavailableDerivation"]
