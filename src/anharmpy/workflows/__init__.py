from .mode_lifetime import run_mode_lifetime, write_input_template

__all__ = ["run_mode_lifetime", "write_input_template"]
