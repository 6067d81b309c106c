"""
Обработчики для создания, просмотра и изменения заявок на ремонт.
"""

import html
import io
import logging

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
    Update,
)
from telegram.constants import ParseMode
from telegram.ext import ContextTypes, ConversationHandler

from repair_client.controllers.base import Failed, NotFound
from repair_client.controllers.dashboard import DashboardController
from repair_client.controllers.requests import (
    RequestDetailController,
    RequestFormController,
    RequestListController,
)
from repair_client.core.decorators import require_session
from repair_client.core.permissions import Action
from repair_client.handlers.common import open_api
from repair_client.models.request import (
    REQUEST_PRIORITIES,
    REQUEST_STATUSES,
    MAX_REQUEST_IMAGES,
    RequestDraft,
)
from repair_client.services.formatting import (
    PRIORITY_LABELS,
    format_dashboard,
    format_request_card,
    format_request_line,
    priority_label,
    status_label,
)
from repair_client.services.uploads import ImageFile

logger = logging.getLogger(__name__)

LIST_LIMIT = 20

# Определяем состояния диалога
(TITLE, DESCRIPTION, LOCATION, CATEGORY, PRIORITY, PHOTO) = range(6)


# --- Сводка, список и карточка ---


@require_session(Action.VIEW_DASHBOARD)
async def show_stats(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Выводит сводку по заявкам, посчитанную из полного списка."""
    message = update.effective_message
    async with open_api(context, context.user_data["session"]) as api:
        controller = DashboardController(api)
        stats = await controller.load()

    if stats is None:
        await message.reply_text(f"❌ {controller.state.message}")
        return
    await message.reply_text(format_dashboard(stats), parse_mode=ParseMode.HTML)


@require_session(Action.VIEW_REQUESTS)
async def list_requests(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Выводит последние заявки одним сообщением."""
    message = update.effective_message
    async with open_api(context, context.user_data["session"]) as api:
        controller = RequestListController(api)
        requests = await controller.load()

    if isinstance(controller.state, Failed):
        await message.reply_text(f"❌ {controller.state.message}")
        return
    if not requests:
        await message.reply_text("📭 Заявок пока нет. Создать новую: /new")
        return

    newest_first = sorted(requests, key=lambda r: r.id, reverse=True)[:LIST_LIMIT]
    lines = [f"<b>Заявки ({len(requests)})</b>", ""]
    lines.extend(format_request_line(r) for r in newest_first)
    lines.extend(["", "Подробнее: /request &lt;номер&gt;"])
    await message.reply_text("\n".join(lines), parse_mode=ParseMode.HTML)


def _request_keyboard(controller: RequestDetailController) -> InlineKeyboardMarkup | None:
    request = controller.request
    rows = []
    if controller.can_edit:
        buttons = [
            InlineKeyboardButton(
                status_label(status), callback_data=f"status:{request.id}:{status}"
            )
            for status in REQUEST_STATUSES
            if status != request.status
        ]
        rows.extend(buttons[i : i + 2] for i in range(0, len(buttons), 2))
    if controller.can(Action.DELETE_REQUEST):
        rows.append(
            [InlineKeyboardButton("🗑️ Удалить", callback_data=f"delreq:{request.id}")]
        )
    return InlineKeyboardMarkup(rows) if rows else None


def _render_card(controller: RequestDetailController) -> str:
    request = controller.request
    text = format_request_card(request)
    if request.images:
        links = []
        for i, path in enumerate(request.images, start=1):
            href = html.escape(controller.api.image_url(path), quote=True)
            links.append(f'<a href="{href}">Фото {i}</a>')
        text += "\n" + " · ".join(links)
    if controller.can_edit and controller.technicians:
        technicians = ", ".join(
            f"{html.escape(t.display_name)} (<code>{t.id}</code>)"
            for t in controller.technicians
        )
        text += f"\n\n<i>Исполнители: {technicians}</i>"
    return text


def _parse_request_id(context: ContextTypes.DEFAULT_TYPE) -> int | None:
    if not context.args:
        return None
    try:
        return int(context.args[0].lstrip("#"))
    except ValueError:
        return None


@require_session(Action.VIEW_REQUESTS)
async def show_request(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Показывает карточку заявки.
    Использование: /request <номер>
    """
    message = update.effective_message
    request_id = _parse_request_id(context)
    if request_id is None:
        await message.reply_text("⚠️ Использование: /request <номер заявки>")
        return

    async with open_api(context, context.user_data["session"]) as api:
        controller = RequestDetailController(api, request_id)
        await controller.load()

    if isinstance(controller.state, NotFound):
        await message.reply_text(f"🔍 Заявка #{request_id} не найдена.")
        return
    if isinstance(controller.state, Failed):
        await message.reply_text(f"❌ {controller.state.message}")
        return

    await message.reply_text(
        _render_card(controller),
        parse_mode=ParseMode.HTML,
        reply_markup=_request_keyboard(controller),
    )


@require_session(Action.EDIT_REQUEST)
async def request_callback_handler(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """
    Обрабатывает нажатия на inline-кнопки под карточкой заявки.
    Формат callback_data: "status:<id>:<статус>" или "delreq:<id>".
    """
    query = update.callback_query
    action, payload = query.data.split(":", 1)

    async with open_api(context, context.user_data["session"]) as api:
        if action == "status":
            request_id_str, status = payload.split(":", 1)
            controller = RequestDetailController(api, int(request_id_str))
            await controller.load()
            if isinstance(controller.state, Failed):
                await query.answer(f"⚠️ {controller.state.message}", show_alert=True)
                return
            if controller.request is None:
                await query.answer("⚠️ Заявка не найдена.", show_alert=True)
                return
            await controller.change_status(status)
        elif action == "delreq":
            controller = RequestDetailController(api, int(payload))
            if await controller.delete():
                await query.answer(controller.success)
                await query.edit_message_text(text=f"🗑️ Заявка #{payload} удалена.")
                return
        else:
            await query.answer()
            return

    if controller.error:
        await query.answer(f"⚠️ {controller.error}", show_alert=True)
        return

    await query.answer(controller.success)
    if controller.request is not None:
        await query.edit_message_text(
            text=_render_card(controller),
            parse_mode=ParseMode.HTML,
            reply_markup=_request_keyboard(controller),
        )


async def _edit_request(
    update: Update, context: ContextTypes.DEFAULT_TYPE, usage: str, field: str
) -> None:
    """Общая часть команд /assign, /cost, /reject и /priority."""
    message = update.effective_message
    request_id = _parse_request_id(context)
    if request_id is None or len(context.args) < 2:
        await message.reply_text(f"⚠️ Использование: {usage}")
        return
    value = " ".join(context.args[1:])

    async with open_api(context, context.user_data["session"]) as api:
        controller = RequestDetailController(api, request_id)
        await controller.load()
        if isinstance(controller.state, NotFound):
            await message.reply_text(f"🔍 Заявка #{request_id} не найдена.")
            return
        form = controller.open_edit()
        if form is None:
            await message.reply_text(
                f"❌ {getattr(controller.state, 'message', 'Заявка недоступна.')}"
            )
            return
        if field == "rejection_reason":
            form = form.model_copy(update={"status": "rejected", field: value})
        elif field == "priority":
            if value not in REQUEST_PRIORITIES:
                await message.reply_text(
                    "⚠️ Приоритет: " + ", ".join(REQUEST_PRIORITIES)
                )
                return
            form = form.model_copy(update={field: value})
        else:
            form = form.model_copy(update={field: value})
        await controller.submit_edit(form)

    if controller.error:
        await message.reply_text(f"❌ {controller.error}")
        return
    await message.reply_text(
        f"✅ {controller.success}\n\n{_render_card(controller)}",
        parse_mode=ParseMode.HTML,
    )


@require_session(Action.EDIT_REQUEST)
async def assign_technician(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _edit_request(
        update, context, "/assign <номер заявки> <ID исполнителя>", "technician_id"
    )


@require_session(Action.EDIT_REQUEST)
async def set_cost(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _edit_request(update, context, "/cost <номер заявки> <сумма>", "cost")


@require_session(Action.EDIT_REQUEST)
async def reject_request(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _edit_request(
        update, context, "/reject <номер заявки> <причина>", "rejection_reason"
    )


@require_session(Action.EDIT_REQUEST)
async def set_priority(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await _edit_request(
        update, context, "/priority <номер заявки> <low|medium|high|urgent>", "priority"
    )


# --- Создание заявки ---


@require_session(Action.CREATE_REQUEST)
async def new_request_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Начинает диалог создания новой заявки."""
    message = update.effective_message

    async with open_api(context, context.user_data["session"]) as api:
        controller = RequestFormController(api)
        categories = await controller.load()

    if isinstance(controller.state, Failed):
        await message.reply_text(f"❌ {controller.state.message}")
        return ConversationHandler.END
    if not categories:
        await message.reply_text(
            "⚠️ Категории ещё не созданы. Обратитесь к администратору."
        )
        return ConversationHandler.END

    context.user_data["draft"] = RequestDraft()
    context.user_data["request_form"] = {
        "categories": {c.name: c.id for c in categories},
        "images": [],
    }
    await message.reply_text(
        "Начинаем создание новой заявки.\n\n"
        "<b>Шаг 1/6:</b> Кратко опишите проблему (тема заявки).",
        parse_mode=ParseMode.HTML,
    )
    return TITLE


async def get_title(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    title = (message.text or "").strip()
    if not title:
        await message.reply_text("Тема заявки не может быть пустой.")
        return TITLE
    context.user_data["draft"].title = title
    await message.reply_text(
        f"Тема: <b>{html.escape(title)}</b>\n\n<b>Шаг 2/6:</b> Подробно опишите проблему.",
        parse_mode=ParseMode.HTML,
    )
    return DESCRIPTION


async def get_description(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    description = (message.text or "").strip()
    if not description:
        await message.reply_text("Описание не может быть пустым.")
        return DESCRIPTION
    context.user_data["draft"].description = description
    await message.reply_text(
        "<b>Шаг 3/6:</b> Укажите местоположение (например, 'Корпус 2, каб. 101'). "
        "Если не требуется, нажмите /skip.",
        parse_mode=ParseMode.HTML,
    )
    return LOCATION


async def _ask_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    names = list(context.user_data["request_form"]["categories"])
    keyboard = [[name] for name in names]
    await update.effective_message.reply_text(
        "<b>Шаг 4/6:</b> Выберите категорию с помощью кнопок ниже.",
        reply_markup=ReplyKeyboardMarkup(
            keyboard, one_time_keyboard=True, resize_keyboard=True
        ),
        parse_mode=ParseMode.HTML,
    )
    return CATEGORY


async def get_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["draft"].location = (update.effective_message.text or "").strip()
    return await _ask_category(update, context)


async def skip_location(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    return await _ask_category(update, context)


async def get_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    categories = context.user_data["request_form"]["categories"]

    # Проверяем, что пользователь выбрал один из предложенных вариантов
    if message.text not in categories:
        await message.reply_text(
            "Пожалуйста, выберите категорию, используя предложенные кнопки."
        )
        return CATEGORY

    context.user_data["draft"].category_id = categories[message.text]
    keyboard = [[PRIORITY_LABELS[p]] for p in REQUEST_PRIORITIES]
    await message.reply_text(
        f"Категория: <b>{html.escape(message.text)}</b>\n\n<b>Шаг 5/6:</b> Выберите приоритет.",
        reply_markup=ReplyKeyboardMarkup(
            keyboard, one_time_keyboard=True, resize_keyboard=True
        ),
        parse_mode=ParseMode.HTML,
    )
    return PRIORITY


async def get_priority(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    by_label = {label: key for key, label in PRIORITY_LABELS.items()}
    if message.text not in by_label:
        await message.reply_text(
            "Пожалуйста, выберите приоритет, используя предложенные кнопки."
        )
        return PRIORITY

    context.user_data["draft"].priority = by_label[message.text]
    await message.reply_text(
        f"Приоритет: <b>{html.escape(message.text)}</b>\n\n"
        f"<b>Шаг 6/6:</b> Прикрепите до {MAX_REQUEST_IMAGES} фотографий поломки, "
        "по одной в сообщении. Когда закончите, нажмите /done. "
        "Если фото не требуется, нажмите /skip.",
        reply_markup=ReplyKeyboardRemove(),
        parse_mode=ParseMode.HTML,
    )
    return PHOTO


async def _download_image(update: Update, context: ContextTypes.DEFAULT_TYPE) -> ImageFile:
    """Скачивает фото или изображение-документ из Telegram в память."""
    message = update.effective_message
    if message.photo:
        photo = message.photo[-1]
        file_id = photo.file_id
        filename = f"{photo.file_unique_id}.jpg"
        content_type = "image/jpeg"
    else:
        document = message.document
        file_id = document.file_id
        filename = document.file_name or f"{document.file_unique_id}.bin"
        content_type = document.mime_type or "application/octet-stream"

    tg_file = await context.bot.get_file(file_id)
    file_content = io.BytesIO()
    await tg_file.download_to_memory(file_content)
    return ImageFile(
        filename=filename, content_type=content_type, data=file_content.getvalue()
    )


@require_session(Action.CREATE_REQUEST)
async def get_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Загружает очередное фото на сервер сразу после получения."""
    message = update.effective_message
    form = context.user_data["request_form"]
    image = await _download_image(update, context)

    async with open_api(context, context.user_data["session"]) as api:
        controller = RequestFormController(api)
        controller.images = list(form["images"])
        await controller.attach_images([image])

    if controller.error:
        await message.reply_text(f"⚠️ {controller.error}")
        return PHOTO

    form["images"] = controller.images
    attached = len(form["images"])
    if attached >= MAX_REQUEST_IMAGES:
        return await finish_request(update, context)

    await message.reply_text(
        f"📷 Фото получено ({attached}/{MAX_REQUEST_IMAGES}). "
        "Отправьте ещё или нажмите /done."
    )
    return PHOTO


@require_session(Action.CREATE_REQUEST)
async def finish_request(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Создает заявку с уже загруженными фото и завершает диалог."""
    message = update.effective_message
    draft: RequestDraft = context.user_data["draft"]
    form = context.user_data["request_form"]

    await message.reply_text("Сохраняю заявку...")
    async with open_api(context, context.user_data["session"]) as api:
        controller = RequestFormController(api)
        controller.images = list(form["images"])
        created = await controller.submit(draft)

    if created is None:
        await message.reply_text(
            f"❌ {controller.error}\n\nПопробуйте ещё раз или отмените: /cancel"
        )
        return PHOTO

    logger.info(f"New request #{created.id} created via bot.")
    await message.reply_text(
        f"✅ {controller.success}\n\n"
        f"Номер заявки: <b>#{created.id}</b>\n"
        f"Приоритет: {priority_label(created.priority)}\n"
        f"Подробнее: /request {created.id}",
        parse_mode=ParseMode.HTML,
    )
    context.user_data.pop("draft", None)
    context.user_data.pop("request_form", None)
    return ConversationHandler.END
