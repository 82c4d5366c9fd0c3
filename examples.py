# Generate example frames and animations
from motion_dsl import example_bouncing_ball, run_example, run_script

# Still frames of every shape
run_example('basic_shapes', output_dir='images')

# Orbit path, final frame saved
run_example('orbit_path', output_dir='images')

# Bouncing ball as a GIF
run_script(example_bouncing_ball() + 'export "bouncing_ball.gif" 20 3\n', output_dir='images')
