data_root = "Data"
depth_dir = "./depth_views"
random_seed = 36

# View points
num_vps = 20
img_size = 224
marker_size = 20 # Corner patch drawn on view points that were not kept
marker_value = 1.0
drop_range_low_offset = 5 # Drop count drawn from [num_vps-5, num_vps-2]
drop_range_high_offset = 2

# Memory (MBs)
max_memory = 3000
free_mem_ratio = 0.2

# Training helpers
batch_size = 4
min_examples_per_category = 20
num_encoding_samples = 5
silhouette_threshold = 0.12
nyud_crop_size = 224

# Outputs
plot_dir = "./plots"
export_dir = "./dropped_vps"
tsne_figure_px = 4096
