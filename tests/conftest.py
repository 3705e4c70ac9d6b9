import jax

# Jacobian checks against finite differences need double precision.
jax.config.update("jax_enable_x64", True)
