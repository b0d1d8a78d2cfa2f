import torch

import config


def generate_batch_indices(num_data_points, batch_size, generator=None):
    """Shuffled example indices split into batches.

    A last batch of a single example is left out: batch norm layers need
    more than one example.
    """
    indices = list(torch.randperm(num_data_points, generator=generator).split(batch_size))
    if len(indices) > 1 and len(indices[-1]) < 2:
        indices.pop()
    return indices


def normalize_minus_one_to_one(data, in_place=False):
    # [0, 1] -> [-1, 1]
    data = data if in_place else data.clone()
    return data.mul_(255).div_(127).add_(-1)


def normalize_back_to_zero_to_one(data, in_place=False):
    # [-1, 1] -> [0, 1]
    data = data if in_place else data.clone()
    return data.add_(1).mul_(127).div_(255)


def clear_optim_state(state, reset_timer=False, num_batches_on_last_epoch=None):
    """Free the tensors and buffers held by an optimizer state dict, in place.

    Step counters are removed with ``reset_timer``, or else rewound by
    ``num_batches_on_last_epoch`` when it is given.
    """
    for key, value in list(state.items()):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            del state[key]
        elif reset_timer:
            del state[key]
        elif num_batches_on_last_epoch:
            state[key] = value - num_batches_on_last_epoch
    return state


def combine_mean_log_var_tensors(means, log_vars, labels):
    # One entry per training file on disk
    return torch.cat(means, 0), torch.cat(log_vars, 0), torch.cat(labels, 0)


def find_eligible_cats_indices(labels, num_categories, min_examples=config.min_examples_per_category):
    labels = torch.as_tensor(labels, dtype=torch.long)
    counts = torch.bincount(labels, minlength=num_categories)
    return torch.nonzero(counts[labels] > min_examples).reshape(-1)


def rand_perm_list(items, generator=None):
    if len(items) < 2:
        return list(items)
    return [items[i] for i in torch.randperm(len(items), generator=generator).tolist()]
