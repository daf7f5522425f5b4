# Generate rotation plots for the built-in gear trains
from gearbox_dsl import EXAMPLES, AnimationConfig, GearboxCompiler

for name, example in EXAMPLES.items():
    compiler = GearboxCompiler()
    compiler.compile_dsl(example())
    compiler.simulate(2000, AnimationConfig(step_size=0.05))
    compiler.plot_rotations(show=False, filename=f'images/{name}_rotations.png')
