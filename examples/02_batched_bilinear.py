import numpy as np

from einfactor import PlanConfig, expand, generate_call, generate_module

# Bilinear form x^T W y over a trailing batch of 6, with W shared.
NOTATION = "i...,ij,j...->..."

plan = expand(NOTATION, ["x", "w", "y"], call_site=__file__, config=PlanConfig(order="descending"))
print(plan.explain())

source = generate_module(plan, entry="bilinear")
namespace = {}
exec(compile(source, "<bilinear>", "exec"), namespace)
print(generate_call(plan, entry="bilinear"))

rng = np.random.default_rng(11)
x = rng.standard_normal((3, 6))
w = rng.standard_normal((3, 4))
y = rng.standard_normal((4, 6))
out = namespace["bilinear"](x, w, y)
np.testing.assert_allclose(out, np.einsum(NOTATION, x, w, y))
print(out)
