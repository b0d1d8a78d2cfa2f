import os

import matplotlib.pyplot as plt
import numpy as np
import torch

import config


def plot_error(train_er_paths, validation_er_paths, error_plot_names, title=None, save_path=config.plot_dir, y_label=None):
    """Save one PNG per pair of training/validation error curves.

    Each path points to a 1-D tensor saved with ``torch.save``, one value per
    epoch. A trailing empty training path is ignored.
    """
    os.makedirs(save_path, exist_ok=True)
    num_plots = len(train_er_paths)
    if num_plots and train_er_paths[-1] == "":
        num_plots -= 1
    saved = []
    for i in range(num_plots):
        train_err = torch.load(train_er_paths[i], weights_only=False).reshape(-1).float().numpy()
        valid_err = torch.load(validation_er_paths[i], weights_only=False).reshape(-1).float().numpy()
        plt.figure(figsize=(10, 6))
        plt.plot(np.arange(1, len(train_err) + 1), train_err, label='Training Error', color='blue', linewidth=2)
        plt.plot(np.arange(1, len(valid_err) + 1), valid_err, label='Validation Error', color='red', linewidth=2)
        plt.xlabel('Epochs')
        plt.ylabel(y_label or error_plot_names[i] or 'Error')
        plt.title(title or '')
        plt.legend()
        plt.grid(True)
        plt.tight_layout()
        out_path = os.path.join(save_path, f"{error_plot_names[i]}.png")
        plt.savefig(out_path)
        plt.close()
        saved.append(out_path)
    return saved


def show_scatter_plot(method, mapped_x, labels, categories, export_dir, size_px=config.tsne_figure_px):
    """Scatter plot of a 2-D embedding (e.g. t-SNE), one colour per category.

    Saved as ``tSNE.svg`` and ``tSNE.png`` in ``export_dir``.
    """
    os.makedirs(export_dir, exist_ok=True)
    mapped_x = torch.as_tensor(mapped_x).reshape(-1, 2).cpu().numpy()
    labels = torch.as_tensor(labels).reshape(-1).cpu().numpy()
    dpi = 100
    fig, ax = plt.subplots(figsize=(size_px / dpi, size_px / dpi), dpi=dpi)
    for k, category in enumerate(categories):
        points = mapped_x[labels == k]
        ax.scatter(points[:, 0], points[:, 1], marker='+', label=category)
    ax.grid(True)
    ax.set_title(method)
    ax.legend(loc='center left')
    paths = [os.path.join(export_dir, 'tSNE.svg'), os.path.join(export_dir, 'tSNE.png')]
    for path in paths:
        fig.savefig(path)
    plt.close(fig)
    return paths


def save_viewpoint_grid(views, save_to):
    """Save the ``[V, H, W]`` view points of one example side by side."""
    views = views.detach().cpu().float().numpy()
    num_vps = views.shape[0]
    fig, axes = plt.subplots(1, num_vps, figsize=(1.5 * num_vps, 1.5), squeeze=False)
    for ax, view in zip(axes[0], views):
        ax.imshow(view, cmap="gray", vmin=0, vmax=1)
        ax.axis("off")
    plt.tight_layout()
    fig.savefig(save_to)
    plt.close(fig)
