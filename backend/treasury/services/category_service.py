"""Service for category lookup, get-or-create and hierarchy maintenance."""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from treasury.config import settings
from treasury.exceptions import NotFoundError, ValidationError
from treasury.models.category import Category
from treasury.models.transaction import TransactionSplit
from treasury.schemas.category import CategoryDelete, CategoryResponse, CategoryUpdate

logger = logging.getLogger(__name__)


def get_or_create_root_category(db: Session, organization_id: str, name: str) -> Category:
    """
    Find a root category by name ignoring case, creating it when missing.

    Two concurrent requests for a new name can both miss and both insert;
    root categories have no uniqueness constraint to stop that.
    Flushes but does not commit.
    """
    normalized = name.strip()
    existing = db.query(Category).filter(
        Category.organization_id == organization_id,
        Category.parent_id.is_(None),
        func.lower(Category.name) == normalized.lower(),
    ).first()
    if existing:
        return existing

    category = Category(
        organization_id=organization_id,
        name=normalized,
        parent_id=None,
        depth=0,
    )
    db.add(category)
    db.flush()
    logger.info(
        "Created root category",
        extra={"organization_id": organization_id, "category_id": category.id},
    )
    return category


def resolve_category(
    db: Session,
    organization_id: str,
    category_id: Optional[str] = None,
    category_name: Optional[str] = None,
) -> str:
    """
    Resolve a split's category reference to a category id.

    An explicit id must exist in the organization. A bare name is matched
    against root categories and created at depth 0 when absent.
    """
    if category_id:
        category = db.query(Category).filter(
            Category.id == category_id,
            Category.organization_id == organization_id,
        ).first()
        if not category:
            label = category_name or category_id
            raise NotFoundError("Category", category_id, f"Category {label} not found")
        return category.id

    if not category_name or not category_name.strip():
        raise ValidationError("Category name is required", field="category_name")

    return get_or_create_root_category(db, organization_id, category_name).id


def list_categories(
    db: Session,
    organization_id: str,
    search: Optional[str] = None,
) -> List[Category]:
    query = db.query(Category).filter(Category.organization_id == organization_id)
    if search:
        query = query.filter(Category.name.ilike(f"%{search}%"))
    return query.order_by(Category.depth, Category.name).all()


def get_category(db: Session, organization_id: str, category_id: str) -> Category:
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.organization_id == organization_id,
    ).first()
    if not category:
        raise NotFoundError("Category", category_id)
    return category


def _check_unique_name(
    db: Session,
    organization_id: str,
    name: str,
    parent_id: Optional[str],
    exclude_id: Optional[str] = None,
) -> None:
    """Names are unique per level, ignoring case."""
    query = db.query(Category).filter(
        Category.organization_id == organization_id,
        func.lower(Category.name) == name.lower(),
    )
    if parent_id:
        query = query.filter(Category.parent_id == parent_id)
    else:
        query = query.filter(Category.parent_id.is_(None))
    if exclude_id:
        query = query.filter(Category.id != exclude_id)
    if query.first():
        raise ValidationError(
            "A category with this name already exists at this level", field="name"
        )


def _check_depth(depth: int) -> None:
    if depth > settings.max_category_depth:
        raise ValidationError(
            f"Categories cannot be nested deeper than {settings.max_category_depth} levels",
            field="parent_id",
        )


def _children(db: Session, category_id: str) -> List[Category]:
    return db.query(Category).filter(Category.parent_id == category_id).all()


def _descendants(db: Session, category: Category) -> List[Category]:
    """Every category below ``category``, parents before children."""
    found = []
    pending = [category]
    while pending:
        children = _children(db, pending.pop(0).id)
        found.extend(children)
        pending.extend(children)
    return found


def _reparent(
    db: Session,
    organization_id: str,
    category: Category,
    new_parent_id: Optional[str],
    name: Optional[str] = None,
) -> None:
    """
    Point ``category`` at a new parent and recompute depths below it.

    ``name`` is the name it will carry at the new level, when renaming too.

    Raises:
        NotFoundError: new parent missing
        ValidationError: cycle, depth limit or name clash at the new level
    """
    if new_parent_id == category.id:
        raise ValidationError("A category cannot be its own parent", field="parent_id")

    descendants = _descendants(db, category)
    new_depth = 0
    if new_parent_id:
        parent = db.query(Category).filter(
            Category.id == new_parent_id,
            Category.organization_id == organization_id,
        ).first()
        if not parent:
            raise NotFoundError("Category", new_parent_id, "Parent category not found")
        if parent.id in {d.id for d in descendants}:
            raise ValidationError(
                "Cannot move a category under one of its own subcategories", field="parent_id"
            )
        new_depth = parent.depth + 1

    shift = new_depth - category.depth
    _check_depth(max([new_depth] + [d.depth + shift for d in descendants]))
    _check_unique_name(db, organization_id, name or category.name, new_parent_id, exclude_id=category.id)

    category.parent_id = new_parent_id
    category.depth = new_depth
    for descendant in descendants:
        descendant.depth += shift


def create_category(
    db: Session,
    organization_id: str,
    name: str,
    parent_id: Optional[str] = None,
) -> Category:
    """Create a category, under ``parent_id`` when given."""
    normalized = name.strip()
    depth = 0
    if parent_id:
        parent = db.query(Category).filter(
            Category.id == parent_id,
            Category.organization_id == organization_id,
        ).first()
        if not parent:
            raise NotFoundError("Category", parent_id, "Parent category not found")
        depth = parent.depth + 1
        _check_depth(depth)

    _check_unique_name(db, organization_id, normalized, parent_id)

    category = Category(
        organization_id=organization_id,
        name=normalized,
        parent_id=parent_id,
        depth=depth,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(
    db: Session,
    organization_id: str,
    category_id: str,
    data: CategoryUpdate,
) -> Category:
    """Rename and/or reparent a category. ``parent_id: null`` moves it to the root."""
    category = get_category(db, organization_id, category_id)
    provided = data.model_fields_set

    name = category.name
    if "name" in provided and data.name is not None:
        name = data.name.strip()

    if "parent_id" in provided:
        _reparent(db, organization_id, category, data.parent_id, name=name)
    elif name != category.name:
        _check_unique_name(db, organization_id, name, category.parent_id, exclude_id=category.id)
    category.name = name

    db.commit()
    db.refresh(category)
    return category


def move_category(
    db: Session,
    organization_id: str,
    category_id: str,
    new_parent_id: Optional[str],
) -> Category:
    """Move a category and its subtree under ``new_parent_id`` (root when None)."""
    category = get_category(db, organization_id, category_id)
    old_parent_id = category.parent_id
    _reparent(db, organization_id, category, new_parent_id)
    db.commit()
    db.refresh(category)
    logger.info(
        "Moved category",
        extra={
            "category_id": category_id,
            "from_parent_id": old_parent_id,
            "to_parent_id": new_parent_id,
        },
    )
    return category


def delete_category(
    db: Session,
    organization_id: str,
    category_id: str,
    options: Optional[CategoryDelete] = None,
) -> None:
    """
    Delete a category that no split uses.

    Subcategories must be given a new home: ``move_children_to`` names a
    category, or ``null`` for the root. Leaving it out while children exist
    is refused.
    """
    category = get_category(db, organization_id, category_id)

    in_use = db.query(TransactionSplit.id).filter(
        TransactionSplit.category_id == category.id
    ).first()
    if in_use:
        raise ValidationError("Cannot delete a category that has transactions")

    children = _children(db, category.id)
    if children:
        if options is None or "move_children_to" not in options.model_fields_set:
            raise ValidationError(
                "Category has subcategories; specify where to move them",
                field="move_children_to",
            )
        target = options.move_children_to
        if target == category.id:
            raise ValidationError(
                "Cannot move subcategories into the deleted category", field="move_children_to"
            )
        try:
            for child in children:
                _reparent(db, organization_id, child, target)
                db.flush()
        except (NotFoundError, ValidationError):
            db.rollback()
            raise

    db.delete(category)
    db.commit()
    logger.info(
        "Deleted category",
        extra={"category_id": category_id, "moved_children": len(children)},
    )


def build_category_tree(categories: List[Category]) -> List[CategoryResponse]:
    """Build a hierarchical tree structure from flat category list."""
    category_map = {
        cat.id: CategoryResponse.model_validate(cat).model_copy(update={"children": []})
        for cat in categories
    }

    root_categories = []
    for cat in category_map.values():
        if cat.parent_id is None:
            root_categories.append(cat)
        else:
            parent = category_map.get(cat.parent_id)
            if parent:
                parent.children.append(cat)
            else:
                # Parent filtered out by a search; show the match at top level
                root_categories.append(cat)

    return root_categories
