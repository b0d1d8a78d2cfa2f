"""drop_viewpoints.py

Run the view-point selector on a stored batch and dump what the network
would see, for eyeballing the dropout augmentation.

You supply:
    • --depth       : [N, V, H, W] depth tensor saved with torch.save
    • --mask        : optional silhouette tensor of the same shape
    • --keep / --single_view / --drop : the selection policy (default: --drop)
    • --seed        : seed of the generator
    • --out_dir     : folder for the .pt outputs and PNG grids

Run:
    python drop_viewpoints.py --depth data/depth_batch.pt --drop --out_dir dropped_vps

Makes:
    dropped_vps/
        depth.pt, mask.pt, marked_depth.pt, ...
        example_000.png, example_000_marked.png ... etc.
"""
import argparse
import logging
from pathlib import Path

import torch
from tqdm import tqdm

import config
from errors import InvalidArgument
from viewpoints import DropSome, KeepOne, KeepRandomOne, select_viewpoints
from viz import save_viewpoint_grid

logger = logging.getLogger(__name__)


def build_policy(cfg):
    if cfg.keep is not None:
        return KeepOne(cfg.keep)
    if cfg.single_view:
        return KeepRandomOne()
    if not cfg.drop:
        logger.info("No policy flag given, dropping view points at random")
    return DropSome()


def main(cfg):
    depth = torch.load(cfg.depth, map_location="cpu", weights_only=False)
    mask = torch.load(cfg.mask, map_location="cpu", weights_only=False) if cfg.mask else None
    generator = torch.Generator().manual_seed(cfg.seed)
    try:
        selection = select_viewpoints(depth, mask, build_policy(cfg), mark_selection=True, generator=generator)
    except InvalidArgument as e:
        print(f"⚠️ Cannot select view points: {e}")
        return 1

    out_dir = Path(cfg.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    outputs = {
        "depth": selection.depth,
        "mask": selection.mask,
        "marked_depth": selection.marked_depth,
        "marked_mask": selection.marked_mask,
        "picked_viewpoints": selection.picked_viewpoints,
    }
    for name, tensor in outputs.items():
        if tensor is not None:
            torch.save(tensor, out_dir / f"{name}.pt")

    for i in tqdm(range(selection.depth.shape[0]), desc="Saving grids"):
        save_viewpoint_grid(selection.depth[i], out_dir / f"example_{i:03d}.png")
        save_viewpoint_grid(selection.marked_depth[i], out_dir / f"example_{i:03d}_marked.png")
    kept = selection.kept.sum(1).tolist()
    print(f"saved {len(kept)} examples to {out_dir} | view points kept per example: {kept}")
    return 0


def parse_args(argv=None):
    p = argparse.ArgumentParser()
    p.add_argument("--depth", type=str, required=True)
    p.add_argument("--mask", type=str, default=None)
    policy = p.add_mutually_exclusive_group()
    policy.add_argument("--keep", type=int, default=None)
    policy.add_argument("--single_view", action="store_true")
    policy.add_argument("--drop", action="store_true")
    p.add_argument("--seed", type=int, default=config.random_seed)
    p.add_argument("--out_dir", type=str, default=config.export_dir)
    return p.parse_args(argv)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main(parse_args()))
