from .json_model import model_to_payload, read_json_model, write_json_model

__all__ = ["read_json_model", "write_json_model", "model_to_payload"]
