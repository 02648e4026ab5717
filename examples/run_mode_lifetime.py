"""Run config-driven phonon lifetime calculations from a JSON input file.

Usage examples:
  python examples/run_mode_lifetime.py --write-template examples/configs/lifetime_template.json
  python examples/run_mode_lifetime.py --input examples/configs/lifetime_template.json
"""

from anharmpy.workflows.mode_lifetime import main


if __name__ == "__main__":
    main()
