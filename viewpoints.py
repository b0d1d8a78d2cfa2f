"""viewpoints.py

Selection and dropout of view points in multi-view depth batches.

A batch is a ``[N, V, H, W]`` tensor: N examples, each rendered from V fixed
view points. An optional silhouette batch of the same shape follows every
operation applied to the depth batch. The selector keeps one view point,
collapses the batch to one random view point per example, or zeroes a random
subset of view points, depending on the policy it is given.

    policy = policy_from_flags(num_viewpoints=20, viewpoint_to_keep=25)
    depth, mask = select_viewpoints(depth, mask, policy, generator=g)

Randomness only ever comes from the ``torch.Generator`` passed in (or a
fresh one local to the call), so two calls never share generator state.
"""
import logging
import operator
import warnings
from dataclasses import dataclass
from typing import Any, Sequence

import torch

import config
from errors import DegenerateRange, InvalidArgument

logger = logging.getLogger(__name__)


def _as_index(value, name):
    if isinstance(value, bool):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    try:
        index = operator.index(value)
    except TypeError:
        raise InvalidArgument(f"{name} must be an integer, got {value!r}") from None
    if index < 0:
        raise InvalidArgument(f"{name} must be non-negative, got {index}")
    return index


def _as_index_tuple(values, name):
    if values is None:
        return None
    if isinstance(values, torch.Tensor):
        values = values.reshape(-1).tolist()
    return tuple(_as_index(v, name) for v in values)


@dataclass(frozen=True)
class KeepOne:
    """Keep ``viewpoint`` for every example and zero the other view points."""

    viewpoint: int

    def __post_init__(self):
        object.__setattr__(self, "viewpoint", _as_index(self.viewpoint, "viewpoint"))


@dataclass(frozen=True)
class KeepRandomOne:
    """Collapse the view-point axis to a single, per-example view point.

    Without ``picked_viewpoints`` every example gets a uniformly random view
    point. Passing the ``picked_viewpoints`` of a previous selection repeats
    that selection exactly.
    """

    picked_viewpoints: Sequence[int] | torch.Tensor | None = None

    def __post_init__(self):
        object.__setattr__(
            self, "picked_viewpoints", _as_index_tuple(self.picked_viewpoints, "picked view point")
        )


@dataclass(frozen=True)
class DropSome:
    """Zero out some view points and keep the rest.

    With no arguments each example drops a random number of view points in
    ``drop_count_range(V)``, chosen by a random permutation. ``num_drop``
    alone fixes the count. ``num_drop`` with ``drop_indices`` drops the first
    ``num_drop`` of ``drop_indices`` from every example, with no randomness.
    """

    num_drop: int | None = None
    drop_indices: Sequence[int] | torch.Tensor | None = None

    def __post_init__(self):
        drop_indices = _as_index_tuple(self.drop_indices, "drop index")
        if not drop_indices:
            drop_indices = None
        num_drop = self.num_drop
        if num_drop is not None:
            num_drop = _as_index(num_drop, "num_drop")
        elif drop_indices is not None:
            num_drop = len(drop_indices)
        if drop_indices is not None:
            if num_drop > len(drop_indices):
                raise InvalidArgument(
                    f"num_drop={num_drop} exceeds the {len(drop_indices)} drop indices given"
                )
            if len(set(drop_indices[:num_drop])) != num_drop:
                raise InvalidArgument(f"Duplicate drop indices: {drop_indices[:num_drop]}")
        object.__setattr__(self, "num_drop", num_drop)
        object.__setattr__(self, "drop_indices", drop_indices)


@dataclass(frozen=True)
class NoOp:
    """Return a copy of the batch."""


SelectionPolicy = KeepOne | KeepRandomOne | DropSome | NoOp


@dataclass
class ViewpointSelection:
    """Result of ``select_viewpoints``.

    ``kept`` is a bool ``[N, V]`` tensor of the input view points that
    survived. Iterating yields the depth output, then the mask output and the
    conditioning vector when they are present.
    """

    depth: torch.Tensor
    mask: torch.Tensor | None = None
    conditioning: Any = None
    kept: torch.Tensor | None = None
    picked_viewpoints: torch.Tensor | None = None
    marked_depth: torch.Tensor | None = None
    marked_mask: torch.Tensor | None = None

    def __iter__(self):
        yield self.depth
        if self.mask is not None:
            yield self.mask
        if self.conditioning is not None:
            yield self.conditioning


def policy_from_flags(num_viewpoints, viewpoint_to_keep=None, single_view_net=False,
                      picked_viewpoints=None, num_drop=None, drop_indices=None) -> SelectionPolicy:
    """Translate the flag-style arguments of the training scripts into a policy.

    ``single_view_net`` wins over everything else. Otherwise a
    ``viewpoint_to_keep`` past the last view point asks for random dropout,
    a valid one keeps that view point, and no flag at all is a no-op.
    """
    if single_view_net:
        return KeepRandomOne(picked_viewpoints)
    if viewpoint_to_keep is not None:
        if viewpoint_to_keep >= num_viewpoints:
            return DropSome(num_drop, drop_indices)
        return KeepOne(viewpoint_to_keep)
    return NoOp()


def drop_count_range(num_viewpoints):
    """Inclusive ``(low, high)`` range the random drop count is drawn from.

    Nominally ``[V-5, V-2]``; clamped to ``[0, V-1]`` so at least one view
    point always survives. Warns with ``DegenerateRange`` when clamped.
    """
    low = num_viewpoints - config.drop_range_low_offset
    high = num_viewpoints - config.drop_range_high_offset
    clamped_low = max(low, 0)
    clamped_high = min(max(high, 0), max(num_viewpoints - 1, 0))
    if (clamped_low, clamped_high) != (low, high):
        warnings.warn(
            f"Drop count range [{low}, {high}] is degenerate for {num_viewpoints} view points, "
            f"using [{clamped_low}, {clamped_high}]",
            DegenerateRange,
            stacklevel=2,
        )
    return clamped_low, clamped_high


def _unpack_batch(depth, mask):
    if isinstance(depth, (tuple, list)):
        if mask is not None:
            raise InvalidArgument("Mask given both inside the depth pair and as an argument")
        if len(depth) != 2 or depth[0] is None or depth[1] is None:
            raise InvalidArgument("Expected a (depth, mask) pair")
        depth, mask = depth
    if not isinstance(depth, torch.Tensor):
        raise InvalidArgument(f"Depth must be a tensor, got {type(depth).__name__}")
    if depth.ndim != 4:
        raise InvalidArgument(f"Expected a [N, V, H, W] batch, got shape {tuple(depth.shape)}")
    if depth.shape[1] < 1:
        raise InvalidArgument("Batch has no view points")
    if mask is not None:
        if not isinstance(mask, torch.Tensor) or mask.shape != depth.shape:
            raise InvalidArgument(
                f"Mask shape {tuple(getattr(mask, 'shape', ()))} does not match depth shape {tuple(depth.shape)}"
            )
    return depth, mask


def _check_policy(policy, num_examples, num_viewpoints):
    if isinstance(policy, KeepOne):
        if policy.viewpoint >= num_viewpoints:
            raise InvalidArgument(f"View point {policy.viewpoint} out of range for {num_viewpoints} view points")
    elif isinstance(policy, KeepRandomOne):
        picked = policy.picked_viewpoints
        if picked is not None:
            if len(picked) != num_examples:
                raise InvalidArgument(f"Got {len(picked)} picked view points for {num_examples} examples")
            if any(vp >= num_viewpoints for vp in picked):
                raise InvalidArgument(f"Picked view points {picked} out of range for {num_viewpoints} view points")
    elif isinstance(policy, DropSome):
        if policy.num_drop is not None and policy.num_drop > num_viewpoints:
            raise InvalidArgument(f"Cannot drop {policy.num_drop} of {num_viewpoints} view points")
        if policy.drop_indices is not None and any(i >= num_viewpoints for i in policy.drop_indices):
            raise InvalidArgument(f"Drop indices {policy.drop_indices} out of range for {num_viewpoints} view points")
    elif not isinstance(policy, NoOp):
        raise InvalidArgument(f"Unknown selection policy {policy!r}")


def _dropped_viewpoints(policy, num_examples, num_viewpoints, generator):
    dropped = torch.zeros(num_examples, num_viewpoints, dtype=torch.bool)
    if policy.drop_indices is not None:
        indices = torch.tensor(policy.drop_indices[:policy.num_drop], dtype=torch.long)
        dropped[:, indices] = True
        return dropped
    if policy.num_drop is None:
        low, high = drop_count_range(num_viewpoints)
    for i in range(num_examples):
        if policy.num_drop is None:
            num_drop = int(torch.randint(low, high + 1, (1,), generator=generator))
        else:
            num_drop = policy.num_drop
        order = torch.randperm(num_viewpoints, generator=generator)
        dropped[i, order[:num_drop]] = True
    return dropped


def _pick_viewpoints(policy, num_examples, num_viewpoints, generator):
    if policy.picked_viewpoints is not None:
        return torch.tensor(policy.picked_viewpoints, dtype=torch.long)
    return torch.randint(0, num_viewpoints, (num_examples,), generator=generator)


def _mark(batch, kept):
    marked = batch.clone()
    corner = marked[:, :, :config.marker_size, :config.marker_size]
    corner[~kept.to(batch.device)] = config.marker_value
    return marked


def _zero_dropped(batch, kept, in_place):
    out = batch if in_place else batch.clone()
    dropped = ~kept
    if dropped.any():
        out[dropped.to(out.device)] = 0
    return out


def _gather(batch, picked):
    rows = torch.arange(batch.shape[0], device=batch.device)
    return batch[rows, picked.to(batch.device)].unsqueeze(1)


def select_viewpoints(depth, mask=None, policy: SelectionPolicy | None = None, mark_selection=False,
                      conditioning=None, generator: torch.Generator | None = None,
                      in_place=False) -> ViewpointSelection:
    """Apply a view-point selection policy to a ``[N, V, H, W]`` batch.

    :param depth: depth batch, or a ``(depth, mask)`` pair
    :param mask: silhouette batch with the same shape as ``depth``
    :param policy: one of KeepOne, KeepRandomOne, DropSome, NoOp (default)
    :param mark_selection: also return copies of the inputs with a white
        corner patch on every view point that was not kept. Meant for
        exporting examples to disk, not for training.
    :param conditioning: passed through to the result unchanged
    :param generator: source of randomness for the random policies
    :param in_place: write the result into ``depth``/``mask`` instead of
        copies. KeepRandomOne changes the shape and always allocates.
    :return: a ViewpointSelection; unpacks as ``depth[, mask][, conditioning]``
    """
    depth, mask = _unpack_batch(depth, mask)
    num_examples, num_viewpoints, height, width = depth.shape
    if policy is None:
        policy = NoOp()
    _check_policy(policy, num_examples, num_viewpoints)
    if mark_selection and (height < config.marker_size or width < config.marker_size):
        raise InvalidArgument(
            f"A {config.marker_size}x{config.marker_size} marker does not fit in {height}x{width} images"
        )
    if generator is None:
        generator = torch.Generator()
        generator.seed()
    logger.debug("Selecting view points of a %s batch with %r", tuple(depth.shape), policy)

    picked = None
    if isinstance(policy, KeepRandomOne):
        picked = _pick_viewpoints(policy, num_examples, num_viewpoints, generator)
        kept = torch.zeros(num_examples, num_viewpoints, dtype=torch.bool)
        kept[torch.arange(num_examples), picked] = True
    elif isinstance(policy, KeepOne):
        kept = torch.zeros(num_examples, num_viewpoints, dtype=torch.bool)
        kept[:, policy.viewpoint] = True
    elif isinstance(policy, DropSome):
        kept = ~_dropped_viewpoints(policy, num_examples, num_viewpoints, generator)
    else:
        kept = torch.ones(num_examples, num_viewpoints, dtype=torch.bool)

    # Marked copies are taken before anything is written in place
    marked_depth = marked_mask = None
    if mark_selection:
        marked_depth = _mark(depth, kept)
        if mask is not None:
            marked_mask = _mark(mask, kept)

    if picked is not None:
        depth_out = _gather(depth, picked)
        mask_out = _gather(mask, picked) if mask is not None else None
    else:
        depth_out = _zero_dropped(depth, kept, in_place)
        mask_out = _zero_dropped(mask, kept, in_place) if mask is not None else None

    return ViewpointSelection(
        depth=depth_out,
        mask=mask_out,
        conditioning=conditioning,
        kept=kept,
        picked_viewpoints=picked,
        marked_depth=marked_depth,
        marked_mask=marked_mask,
    )


def permute_viewpoints(depth, mask=None, generator: torch.Generator | None = None, in_place=False):
    """Shuffle the view points of every example independently.

    Depth and mask share the permutation of each example. Returns
    ``(depth, mask)``; ``mask`` is None when no mask was given.
    """
    depth, mask = _unpack_batch(depth, mask)
    if generator is None:
        generator = torch.Generator()
        generator.seed()
    num_examples, num_viewpoints = depth.shape[:2]
    order = torch.stack([torch.randperm(num_viewpoints, generator=generator) for _ in range(num_examples)])
    rows = torch.arange(num_examples).unsqueeze(1)

    def permute(batch):
        permuted = batch[rows.to(batch.device), order.to(batch.device)]
        if in_place:
            batch.copy_(permuted)
            return batch
        return permuted

    return permute(depth), permute(mask) if mask is not None else None
