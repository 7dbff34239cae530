"""tmux-mem: attribute process memory to the tmux panes that spawned them."""

__version__ = "0.1.0"
