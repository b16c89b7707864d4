from __future__ import annotations
import argparse, logging, sys, time
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

from sandpile import Sandpile
from sandpile_errors import SandpileError
from sandpile_png import plot_sandpile, save_png
from topple import Topology

# =========================================
# Logging & timing
# =========================================

@contextmanager
def timed(logger: logging.Logger, what: str):
    """Log '[start]' / '[done ]' around a block, with the elapsed seconds."""
    logger.info(f"[start] {what}")
    t0 = time.perf_counter()
    try:
        yield
    finally:
        logger.info(f"[done ] {what} in {time.perf_counter() - t0:.4f}s")

def setup_logger(log_path: Optional[Path] = None, level=logging.INFO) -> logging.Logger:
    # stderr keeps stdout free for the glyph output
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_path:
        handlers.append(logging.FileHandler(log_path, mode="w"))

    logger = logging.getLogger("sandpile")
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.setLevel(level)
    for h in handlers:
        h.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"))
        logger.addHandler(h)
    return logger

# =========================================
# Operations
# =========================================

OPS = ("stabilize", "neutral", "inverse", "order", "add", "recurrent")

def load_pile(path: Path, topology: Topology, width: int, height: int) -> Sandpile:
    text = Path(path).read_text(encoding="utf-8")
    return Sandpile.from_string(topology, (width, height), text)

def run(args, logger: logging.Logger) -> Sandpile:
    topology = Topology(args.topology)
    dims = (args.width, args.height)

    if args.op == "neutral":
        with timed(logger, f"neutral element {args.width}x{args.height}"):
            return Sandpile.neutral(topology, dims)

    pile = load_pile(args.input, topology, *dims)
    logger.info(f"loaded {args.input}: {pile!r}, topplings={pile.last_topple}")

    if args.op == "stabilize":
        return pile
    if args.op == "inverse":
        return pile.inverse()
    if args.op == "add":
        return pile + load_pile(args.other, topology, *dims)
    if args.op == "order":
        with timed(logger, "order"):
            n = pile.order(limit=args.order_limit)
        print(f"order={n}")
        return pile
    if args.op == "recurrent":
        print(f"recurrent={pile.is_recurrent()}")
        return pile
    raise ValueError(f"unknown op: {args.op}")

# =========================================
# CLI
# =========================================

def build_argparser():
    ap = argparse.ArgumentParser(description="Abelian sandpile group on finite and toroidal grids")
    ap.add_argument("--op", choices=OPS, default="stabilize")
    ap.add_argument("--topology", choices=[t.value for t in Topology], default=Topology.FINITE.value)
    ap.add_argument("--width", type=int, required=True)
    ap.add_argument("--height", type=int, required=True)
    ap.add_argument("--input", type=Path, default=None, help="glyph text file (' .:&#' -> 0..4)")
    ap.add_argument("--other", type=Path, default=None, help="second operand for --op add")
    ap.add_argument("--order-limit", type=int, default=None, help="give up --op order after this many additions")
    ap.add_argument("--png", type=Path, default=None, help="write the result, one pixel per cell")
    ap.add_argument("--preview", type=Path, default=None, help="write a matplotlib preview figure")
    ap.add_argument("--show", action="store_true")
    ap.add_argument("--loglevel", type=str, default="INFO", help="DEBUG, INFO, WARNING, ERROR")
    ap.add_argument("--logfile", type=Path, default=None)
    return ap

def main(argv: Optional[List[str]] = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    if args.op != "neutral" and args.input is None:
        ap.error(f"--op {args.op} needs --input")
    if args.op == "add" and args.other is None:
        ap.error("--op add needs --other")

    logger = setup_logger(args.logfile, getattr(logging, args.loglevel.upper(), logging.INFO))

    try:
        pile = run(args, logger)
    except (SandpileError, OSError) as e:
        logger.error(str(e))
        return 2

    sys.stdout.write(str(pile))
    print(f"topplings={pile.last_topple}")

    if args.png:
        with timed(logger, f"png -> {args.png}"):
            save_png(pile.cells, args.png)
    if args.preview or args.show:
        plot_sandpile(pile, out=args.preview, show=args.show)
    return 0

if __name__ == "__main__":
    sys.exit(main())
