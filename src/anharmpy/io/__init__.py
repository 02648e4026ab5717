from anharmpy.io.readers import read_json_model, write_json_model
from anharmpy.io.registry import get_reader, list_readers, read_model, register_reader


register_reader("json", read_json_model)

__all__ = ["register_reader", "get_reader", "list_readers", "read_model", "read_json_model", "write_json_model"]
