from __future__ import annotations

BOT_ID = "BOT"
BOT_COLOR = "#ff6600"
PLAYER_COLORS = ("#00d2ff", "#ff0055", "#00ff66", "#ffcc00")

# (x, y, radius) per node; the index is the node id.
DEFAULT_MAP = (
    (200, 200, 40),
    (1000, 600, 40),
    (1000, 200, 40),
    (200, 600, 40),
    (600, 400, 70),
    (600, 150, 30),
    (600, 650, 30),
    (400, 300, 25),
    (800, 300, 25),
    (400, 500, 25),
    (800, 500, 25),
    (150, 400, 35),
    (1050, 400, 35),
    (400, 100, 20),
    (800, 700, 20),
)

# Seat index -> home node id. The bot always lives at the centre.
SEAT_HOME_NODES = (0, 1, 2, 3)
BOT_HOME_NODE = 4
