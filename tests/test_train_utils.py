import unittest

import torch

from train_utils import (
    clear_optim_state,
    combine_mean_log_var_tensors,
    find_eligible_cats_indices,
    generate_batch_indices,
    normalize_back_to_zero_to_one,
    normalize_minus_one_to_one,
    rand_perm_list,
)


class TestGenerateBatchIndices(unittest.TestCase):
    def test_covers_every_example_once(self):
        batches = generate_batch_indices(10, 4, generator=torch.Generator().manual_seed(0))
        self.assertEqual([len(b) for b in batches], [4, 4, 2])
        self.assertEqual(sorted(torch.cat(batches).tolist()), list(range(10)))

    def test_drops_a_trailing_single_example(self):
        batches = generate_batch_indices(9, 4)
        self.assertEqual([len(b) for b in batches], [4, 4])

    def test_keeps_a_single_batch(self):
        batches = generate_batch_indices(1, 4)
        self.assertEqual(len(batches), 1)


class TestNormalize(unittest.TestCase):
    def test_round_trip(self):
        data = torch.linspace(0, 1, 11)
        restored = normalize_back_to_zero_to_one(normalize_minus_one_to_one(data))
        self.assertTrue(torch.allclose(restored, data, atol=1e-6))

    def test_zero_maps_to_minus_one(self):
        self.assertEqual(float(normalize_minus_one_to_one(torch.zeros(1))), -1.0)

    def test_copies_unless_in_place(self):
        data = torch.ones(3)
        normalize_minus_one_to_one(data)
        self.assertTrue(torch.equal(data, torch.ones(3)))
        out = normalize_minus_one_to_one(data, in_place=True)
        self.assertIs(out, data)
        self.assertFalse(torch.equal(data, torch.ones(3)))


class TestClearOptimState(unittest.TestCase):
    def test_removes_tensors_and_rewinds_counters(self):
        state = {"m": torch.ones(3), "v": torch.ones(3), "t": 120, "evalCounter": 100}
        clear_optim_state(state, num_batches_on_last_epoch=20)
        self.assertEqual(state, {"t": 100, "evalCounter": 80})

    def test_reset_timer_removes_counters(self):
        state = {"m": torch.ones(3), "t": 120}
        clear_optim_state(state, reset_timer=True)
        self.assertEqual(state, {})

    def test_keeps_counters_without_batch_count(self):
        state = {"m": torch.ones(3), "t": 120}
        clear_optim_state(state)
        self.assertEqual(state, {"t": 120})


class TestCombineMeanLogVarTensors(unittest.TestCase):
    def test_concatenates_along_examples(self):
        means = [torch.zeros(2, 4), torch.ones(3, 4)]
        log_vars = [torch.zeros(2, 4), torch.ones(3, 4)]
        labels = [torch.tensor([0, 1]), torch.tensor([2, 2, 1])]
        mean, log_var, label = combine_mean_log_var_tensors(means, log_vars, labels)
        self.assertEqual(mean.shape, (5, 4))
        self.assertEqual(log_var.shape, (5, 4))
        self.assertEqual(label.tolist(), [0, 1, 2, 2, 1])


class TestFindEligibleCatsIndices(unittest.TestCase):
    def test_keeps_examples_of_large_categories(self):
        labels = [0] * 21 + [1] * 20 + [2] * 25
        indices = find_eligible_cats_indices(labels, num_categories=3)
        expected = list(range(21)) + list(range(41, 66))
        self.assertEqual(indices.tolist(), expected)

    def test_custom_minimum(self):
        indices = find_eligible_cats_indices(torch.tensor([0, 0, 1]), num_categories=2, min_examples=1)
        self.assertEqual(indices.tolist(), [0, 1])


class TestRandPermList(unittest.TestCase):
    def test_is_a_permutation(self):
        items = ["a", "b", "c", "d"]
        permuted = rand_perm_list(items, generator=torch.Generator().manual_seed(1))
        self.assertEqual(sorted(permuted), items)
        self.assertEqual(items, ["a", "b", "c", "d"])

    def test_short_lists_are_copied(self):
        self.assertEqual(rand_perm_list(["a"]), ["a"])
