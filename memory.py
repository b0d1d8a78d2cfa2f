import math
import logging

import psutil
import torch

import config
from errors import InvalidArgument

logger = logging.getLogger(__name__)


def num_tensor_elements(size):
    return math.prod(size)


def get_free_memory(ratio, max_memory=config.max_memory):
    """Free system memory in MBs, keeping ``ratio`` of it in reserve, capped at ``max_memory``."""
    if not 0 <= ratio <= 1:
        raise InvalidArgument(f"ratio must be in [0, 1], got {ratio}")
    free_mem = psutil.virtual_memory().available / 1024 / 1024
    usable = free_mem - free_mem * ratio
    return min(usable, max_memory)


def memory_per_sample_image(img_size, num_bytes):
    """Memory in MBs taken by one image of ``img_size`` (a ``(C, H, W)`` size counts a single channel)."""
    img_size = tuple(img_size)
    if len(img_size) == 3:
        num_elements = img_size[1] * img_size[2]
    elif len(img_size) == 2:
        num_elements = img_size[0] * img_size[1]
    else:
        num_elements = num_tensor_elements(img_size)
    return num_elements * num_bytes / 1024 / 1024


def get_gpu_mem():
    """Free and total memory of the current GPU in MBs, ``(0, 0)`` without CUDA."""
    if not torch.cuda.is_available():
        return 0, 0
    free, total = torch.cuda.mem_get_info()
    return free / 1024 / 1024, total / 1024 / 1024


def max_batch_size(free_mem, img_size, num_bytes, num_images_per_example=config.num_vps):
    per_example = memory_per_sample_image(img_size, num_bytes) * num_images_per_example
    batch_size = max(int(free_mem // per_example), 1) if per_example > 0 else 1
    logger.debug("%.1f MB free, %.3f MB per example -> batch size %d", free_mem, per_example, batch_size)
    return batch_size
