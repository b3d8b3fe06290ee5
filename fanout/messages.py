from __future__ import annotations

from typing import Optional

from models.notifications import InvitationTask, PushMessage

RECIPE_FALLBACK = "a recipe"
ITEM_FALLBACK = "an item"


def build_invitation_message(task: InvitationTask) -> PushMessage:
    body = f"You were invited to {task.item_name}" if task.item_name else "You have a new invitation"
    return PushMessage(
        title="New invitation",
        body=body,
        data={
            "type": "invitation",
            "invitationId": task.invitation_id,
            "itemId": task.item_id or "",
            "itemType": task.item_type or "",
        },
    )


def build_menu_message(menu_id: str, menu_name: Optional[str], recipe_id: str, recipe_title: str) -> PushMessage:
    return PushMessage(
        title="Menu updated",
        body=f"{menu_name or 'Menu'}: added {recipe_title or RECIPE_FALLBACK}",
        data={"type": "menu", "menuListId": menu_id, "recipeId": recipe_id},
    )


def build_collection_message(collection_id: str, collection_name: Optional[str], recipe_id: str,
                             recipe_title: str) -> PushMessage:
    return PushMessage(
        title="Collection updated",
        body=f"{collection_name or 'Collection'}: added {recipe_title or RECIPE_FALLBACK}",
        data={"type": "recipeCollection", "collectionId": collection_id, "recipeId": recipe_id},
    )


def build_shoplist_item_message(shoplist_id: str, shoplist_name: Optional[str], item_id: str,
                                item_text: Optional[str]) -> PushMessage:
    return PushMessage(
        title="Shoplist updated",
        body=f"{shoplist_name or 'Shoplist'}: added {item_text or ITEM_FALLBACK}",
        data={"type": "shoplist", "shoplistId": shoplist_id, "itemId": item_id},
    )
