# Marks ``portal.deps`` as a package so ``from portal.deps.auth import require_user`` resolves.
