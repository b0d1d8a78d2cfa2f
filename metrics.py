import torch
import torch.nn.functional as F

from errors import InvalidArgument


def compute_classification_accuracy(predicted_scores, targets=None, return_hot_vec=False, num_cats=None):
    """Top-1 classification hits for a batch of class scores ``[N, C]``.

    Returns the number of correct predictions (divide by the batch size for
    the accuracy), or with ``return_hot_vec`` the ``[N, num_cats]`` one-hot
    matrix of the predicted classes, on the device of the scores.
    """
    pred_scores = predicted_scores.detach().float()
    idx = F.softmax(pred_scores, dim=1).topk(1, dim=1).indices.reshape(-1)
    if not return_hot_vec:
        if targets is None:
            raise InvalidArgument("targets are required to count correct predictions")
        targets = torch.as_tensor(targets, device=idx.device).reshape(-1)
        return int((idx == targets.long()).sum())
    if num_cats is None:
        raise InvalidArgument("num_cats is required for one-hot predictions")
    return F.one_hot(idx, num_classes=num_cats).float()
