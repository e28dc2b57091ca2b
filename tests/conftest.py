"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages and
provides sample store sources shared across test modules.
"""

import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local rxmigrate package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))


USER_STORE = """\
import { signalStore, withState, withMethods, patchState } from '@ngrx/signals';
import { inject } from '@angular/core';
import { UserService } from './user.service';

interface UserState {
  users: User[];
  isLoading: boolean;
  error: string | undefined;
}

export const UserStore = signalStore(
  withState<UserState>({ users: [], isLoading: false, error: undefined }),
  withMethods((store, userService = inject(UserService)) => ({
    async loadUsers(): Promise<void> {
      patchState(store, { isLoading: true });
      try {
        const users = await userService.getUsers();
        patchState(store, { users, isLoading: false });
      } catch (error) {
        patchState(store, { isLoading: false, error: 'Failed to load users' });
      }
    },
  })),
);
"""

BULK_STORE = """\
import { signalStore, withMethods } from '@ngrx/signals';
import { inject } from '@angular/core';
import { ItemService } from './item.service';

export const ItemStore = signalStore(
  withMethods((store, itemService = inject(ItemService)) => ({
    async bulkDelete(ids: string[]): Promise<void> {
      await Promise.all(ids.map((id) => itemService.delete(id)));
    },
  })),
);
"""

NO_ASYNC_STORE = """\
import { signalStore, withState, withMethods, patchState } from '@ngrx/signals';

export const CounterStore = signalStore(
  withState({ count: 0 }),
  withMethods((store) => ({
    increment(): void {
      patchState(store, { count: store.count() + 1 });
    },
  })),
);
"""

UNBALANCED_STORE = """\
import { signalStore, withMethods } from '@ngrx/signals';

export const BrokenStore = signalStore(
  withMethods((store) => ({
    async load(): Promise<void> {
      if (true) {
        await Promise.resolve();
    },
  })),
);
"""

PACKAGE_JSON = {
    "name": "sample-app",
    "dependencies": {"@ngrx/signals": "^18.0.0", "rxjs": "^7.8.0"},
}


@pytest.fixture
def user_store_source() -> str:
    return USER_STORE


@pytest.fixture
def bulk_store_source() -> str:
    return BULK_STORE


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root with a package.json declaring the reactive dependencies."""
    (tmp_path / "package.json").write_text(json.dumps(PACKAGE_JSON))
    stores = tmp_path / "src" / "app" / "stores"
    stores.mkdir(parents=True)
    return tmp_path


@pytest.fixture
def write_store(project: Path) -> Callable[[str, str], Path]:
    """Write a store file under the project's stores directory."""

    def _write(name: str, content: str) -> Path:
        path = project / "src" / "app" / "stores" / name
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def no_async_store_source() -> str:
    return NO_ASYNC_STORE


@pytest.fixture
def unbalanced_store_source() -> str:
    return UNBALANCED_STORE
