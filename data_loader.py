import math
import os
import logging

import torch
from torch.utils.data import Dataset, DataLoader, random_split
from torchvision.io import read_image, ImageReadMode
from torchvision.transforms import InterpolationMode
from torchvision.transforms import functional as TF
from tqdm import tqdm

import config
from errors import InvalidArgument
from files import get_file_names

logger = logging.getLogger(__name__)


class DepthViewDataset(Dataset):
    def __init__(self, depth_paths, num_vps=config.num_vps):
        self.depth_paths = depth_paths
        self.num_vps = num_vps
    def __len__(self): return len(self.depth_paths)
    def __getitem__(self, index):
        file_path = self.depth_paths[index]
        depth = torch.load(file_path, weights_only=False)
        assert depth.ndim == 3 and depth.shape[0] == self.num_vps, f"Unexpected shape: {depth.shape}"
        return depth.float()


def depth_dataloader(data_dir=config.depth_dir, batch_size=config.batch_size, num_vps=config.num_vps):
    depth_paths = [os.path.join(data_dir, path) for path in sorted(os.listdir(data_dir)) if path.endswith(".pt")]
    dataset = DepthViewDataset(depth_paths, num_vps)
    train_size = int(0.8 * len(dataset))
    test_size = len(dataset) - train_size
    generator = torch.Generator().manual_seed(config.random_seed)
    train_set, test_set = random_split(dataset, [train_size, test_size], generator=generator)
    train_loader = DataLoader(train_set, batch_size=batch_size, shuffle=True)
    test_loader = DataLoader(test_set, batch_size=batch_size, shuffle=False)
    return train_loader, test_loader


def _resize(views, new_img_size):
    return TF.resize(views, [new_img_size, new_img_size], interpolation=InterpolationMode.BILINEAR, antialias=True)


def resize_images(images, new_img_size, num_vps):
    """Resize square multi-view images to ``new_img_size``.

    Accepts ``[N, V*S*S]`` (flattened, for fully-connected models),
    ``[N, V, S, S]`` and ``[N, V, C, S, S]`` batches and returns the same
    layout and dtype with ``S`` replaced by ``new_img_size``.
    """
    num_examples = images.shape[0]
    if images.ndim == 2:
        img_size = math.isqrt(images.shape[1] // num_vps)
        if num_vps * img_size * img_size != images.shape[1]:
            raise InvalidArgument(f"{images.shape[1]} values do not hold {num_vps} square images")
        unflattened = images.reshape(num_examples, num_vps, img_size, img_size)
        new_images = torch.empty(num_examples, num_vps * new_img_size * new_img_size, dtype=images.dtype)
        for i in range(num_examples):
            new_images[i] = _resize(unflattened[i].float(), new_img_size).reshape(-1).to(images.dtype)
    elif images.ndim in (4, 5):
        new_images = torch.empty(*images.shape[:-2], new_img_size, new_img_size, dtype=images.dtype)
        for i in range(num_examples):
            new_images[i] = _resize(images[i].float(), new_img_size).to(images.dtype)
    else:
        raise InvalidArgument(f"Cannot resize images of shape {tuple(images.shape)}")
    return new_images


def _load_gray(path):
    return read_image(path, mode=ImageReadMode.GRAY).float() / 255


def load_depth_images(path, look_up, num_vps=config.num_vps, img_size=config.img_size):
    """Load the depth maps of one model, one PNG per view point, into a ``[1, V, S, S]`` tensor."""
    depth = torch.zeros(1, num_vps, img_size, img_size)
    depth_paths = get_file_names(path, look_up)
    if len(depth_paths) > num_vps:
        logger.warning("Found %d depth images in %s, only loading %d", len(depth_paths), path, num_vps)
    for i, depth_path in enumerate(depth_paths[:num_vps]):
        depth[0, i] = _load_gray(depth_path)[0]
    return depth


def load_extra_data(path, forward_type, num_vps=config.num_vps):
    """Load images that are not part of the training data.

    ``'silhouettes'``: ``[M, 1, S, S]`` masks, foreground where the image is dark.
    ``'nyud'``: ``[depth, silhouette, rgb]`` from ordered file triplets.
    ``'completion'``: ``[M / V, V, S, S]`` depth maps, V consecutive files per model.
    """
    file_paths = get_file_names(path)
    if not file_paths:
        raise InvalidArgument(f"No images found in {path}")
    if forward_type == "silhouettes":
        images = torch.stack([_load_gray(p) for p in tqdm(file_paths, desc="Silhouettes")])
        return (images < config.silhouette_threshold).to(images.dtype)
    elif forward_type == "nyud":
        crop = config.nyud_crop_size
        num_samples = len(file_paths) // 3
        depth = torch.zeros(num_samples, 1, crop, crop)
        silhouettes = torch.zeros(num_samples, 1, crop, crop)
        rgb = torch.zeros(num_samples, 3, crop, crop)
        for i in range(num_samples):
            depth_path, sil_path, rgb_path = file_paths[3 * i:3 * i + 3]
            depth[i] = _load_gray(depth_path)[:, :crop, :crop]
            silhouettes[i] = _load_gray(sil_path)[:, :crop, :crop]
            rgb[i] = read_image(rgb_path, mode=ImageReadMode.RGB).float()[:, :crop, :crop] / 255
        return depth, silhouettes, rgb
    elif forward_type == "completion":
        if len(file_paths) % num_vps != 0:
            raise InvalidArgument(f"{len(file_paths)} images cannot be split into models of {num_vps} view points")
        views = torch.stack([_load_gray(p)[0] for p in file_paths])
        return views.reshape(len(file_paths) // num_vps, num_vps, *views.shape[1:])
    raise InvalidArgument(f"Unknown forward type: {forward_type}")
