"""
Content Proxy Service package.

The proxy resolves a repository coordinate (owner/repo/ref/path) to a
document, either straight from the raw-content host or, when the
repository's fstab.yaml mounts the path elsewhere, through a backend such as
the OneDrive conversion service.

Structure:
- app.main: FastAPI app and routes.
- app.adapters: HTTP clients for the mount table and the content backends.
- app.caching: Result memoization and the LRU store.
- app.dispatch: Backend selection, status mapping and cache header synthesis.
- app.domain: Request, descriptor and response models; mount table parsing.
"""
