import numpy as np

from einfactor import build_plan, generate_module

NOTATION = "ij,jk,kl->il"

plan = build_plan(NOTATION)
print(plan.explain())

source = generate_module(plan, entry="matrix_chain")
print(source)

namespace = {}
exec(compile(source, "<matrix_chain>", "exec"), namespace)

rng = np.random.default_rng(7)
a = rng.standard_normal((3, 4))
b = rng.standard_normal((4, 5))
c = rng.standard_normal((5, 2))
out = namespace["matrix_chain"](a, b, c)
np.testing.assert_allclose(out, a @ b @ c)
print("max |error| vs a @ b @ c:", float(np.max(np.abs(out - a @ b @ c))))
