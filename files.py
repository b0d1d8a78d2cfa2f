import logging
import os
import re

import config

logger = logging.getLogger(__name__)


def _natural_key(name):
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", name)]


def find_files(folder_path, file_type):
    """Paths of the ``file_type`` files in ``folder_path`` and their names without the extension.

    E.g. ``chair.zip`` and ``sofa.zip`` give names ``['chair', 'sofa']``.
    """
    suffix = f".{file_type}"
    file_names = sorted(f for f in os.listdir(folder_path) if f.endswith(suffix))
    files_path = [os.path.join(folder_path, f) for f in file_names]
    names = [f[:-len(suffix)] for f in file_names]
    return files_path, names


def get_file_names(path, look_up=None):
    # Same order as `ls -1v`: img2 comes before img10
    names = sorted(os.listdir(path), key=_natural_key)
    if look_up is not None:
        names = [n for n in names if look_up in n]
    return [os.path.join(path, n) for n in names]


def num_of_dirs(path):
    return sum(1 for entry in os.scandir(path) if entry.is_dir())


def get_file_size(path):
    """File size in GBs."""
    return os.path.getsize(path) / 1024 / 1024 / 1024


def obtain_data_paths(benchmark, test_phase=False, lowest_size=False, root=None):
    """Train, validation and test ``.data`` files.

    Benchmark data has no separate test split, so its validation files double
    as test files. In ``test_phase`` all three lists hold the test files (only
    the smallest one if ``lowest_size``) to quickly check that a run works.
    """
    root = os.getcwd() if root is None else root
    data_folder = os.path.join(root, config.data_root, "benchmark" if benchmark else "nonbenchmark", "Datasets")
    train_files, _ = find_files(os.path.join(data_folder, "train"), "data")
    validation_files, _ = find_files(os.path.join(data_folder, "validation"), "data")
    test_files, _ = find_files(os.path.join(data_folder, "validation" if benchmark else "test"), "data")
    if test_phase:
        if lowest_size and test_files:
            test_files = [min(test_files, key=get_file_size)]
        logger.info("Test phase: using %d test file(s) for every split", len(test_files))
        train_files = list(test_files)
        validation_files = list(test_files)
    return train_files, validation_files, test_files


def get_num_of_samples_to_viz(sample_dirs):
    num_samples = 0
    for sample_dir in sample_dirs:
        viz_files = get_file_names(sample_dir, "viz.txt")
        if len(viz_files) == 1:
            with open(viz_files[0]) as f:
                num_samples += sum(1 for _ in f)
    return num_samples


def comma_separated_str_to_table(text, digit=False):
    """``'3, 7'`` -> ``(3, 7)`` with ``digit``; ``'chair,sofa'`` -> ``['chair', 'sofa']`` without."""
    if digit:
        numbers = [int(n) for n in re.findall(r"\d+", text)]
        numbers += [None] * (2 - len(numbers))
        return numbers[0], numbers[1]
    return re.findall(r"[A-Za-z]+", text)
