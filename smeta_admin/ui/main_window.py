from __future__ import annotations

import logging
from typing import Any, Callable

import customtkinter as ctk

from smeta_admin.config import AppSettings, ConfigurationError
from smeta_admin.guards import ADMIN_HOME_PATH, HOME_PATH, LOGIN_PATH, Navigator, RoleGate
from smeta_admin.hooks import AsyncMutation, AsyncResource, spawn_thread
from smeta_admin.logging_utils import configure_logging
from smeta_admin.models import AuthState, RequestState
from smeta_admin.navigation import admin_sections, dashboard_sections, known_routes
from smeta_admin.services import DashboardService, build_service
from smeta_admin.ui.rendering import panel_text, render_named_items, render_stats

logger = logging.getLogger(__name__)

ERROR_COLOR = "#d14343"


class Page(ctk.CTkFrame):
	"""A routed screen. Owns its resources and releases them on dispose."""

	title = ""

	def __init__(self, master, window: "MainWindow"):
		super().__init__(master)
		self._window = window
		self._tracked: list[AsyncResource[Any] | AsyncMutation[Any, Any]] = []

	@property
	def service(self) -> DashboardService:
		return self._window.service

	def resource(self, producer: Callable[[], Any], deps=(), enabled: bool = True) -> AsyncResource[Any]:
		resource = AsyncResource(
			producer,
			deps,
			enabled=enabled,
			runner=spawn_thread,
			dispatch=self._window.dispatch,
		)
		self._tracked.append(resource)
		return resource

	def mutation(self, action: Callable[[Any], Any]) -> AsyncMutation[Any, Any]:
		mutation = AsyncMutation(action, runner=spawn_thread, dispatch=self._window.dispatch)
		self._tracked.append(mutation)
		return mutation

	def dispose(self):
		for tracked in self._tracked:
			tracked.dispose()
		self._tracked.clear()
		self.destroy()


class ResourcePanel(ctk.CTkFrame):
	"""Status line, output box and a retry button bound to one AsyncResource."""

	def __init__(self, master, resource: AsyncResource[Any], render: Callable[[Any], str], height: int = 360):
		super().__init__(master)
		self._resource = resource
		self._render = render

		self._status_label = ctk.CTkLabel(self, text="")
		self._status_label.pack(anchor="w", padx=8, pady=(8, 4))

		self._retry_btn = ctk.CTkButton(self, text="Qayta urinish", command=resource.refetch)

		self._output = ctk.CTkTextbox(self, height=height)
		self._output.pack(fill="both", expand=True, padx=8, pady=(4, 8))

		resource.subscribe(self._show)
		self._show(resource.state)

	def _show(self, state: RequestState[Any]):
		if state.loading:
			self._status_label.configure(text="Yuklanmoqda...", text_color=("gray10", "gray90"))
		elif state.error is not None:
			self._status_label.configure(text=f"Xatolik: {state.error}", text_color=ERROR_COLOR)
		else:
			self._status_label.configure(text="", text_color=("gray10", "gray90"))

		if state.error is not None and not state.loading:
			self._retry_btn.pack(anchor="w", padx=8, pady=(0, 4), before=self._output)
		else:
			self._retry_btn.pack_forget()

		text = panel_text(state, self._render)
		if text is not None:
			self._output.delete("1.0", "end")
			self._output.insert("1.0", text)


class LoginPage(Page):
	title = "Kirish"

	def __init__(self, master, window: "MainWindow"):
		super().__init__(master, window)

		ctk.CTkLabel(self, text="Tizimga kirish", font=ctk.CTkFont(size=20, weight="bold")).pack(
			anchor="w", padx=24, pady=(24, 12)
		)
		self._phone = ctk.CTkEntry(self, placeholder_text="Telefon raqam (+998...)")
		self._phone.pack(fill="x", padx=24, pady=6)
		self._password = ctk.CTkEntry(self, placeholder_text="Parol", show="*")
		self._password.pack(fill="x", padx=24, pady=6)

		self._submit_btn = ctk.CTkButton(self, text="Kirish", command=self._submit)
		self._submit_btn.pack(anchor="w", padx=24, pady=12)

		self._message = ctk.CTkLabel(self, text="", text_color=ERROR_COLOR)
		self._message.pack(anchor="w", padx=24, pady=(0, 12))

		self._login = self.mutation(lambda credentials: self.service.sign_in(*credentials))
		self._login.subscribe(self._show_state)

	def _submit(self):
		phone = self._phone.get().strip()
		password = self._password.get()
		if not phone or not password:
			self._message.configure(text="Telefon raqam va parolni kiriting.")
			return
		self._login.mutate((phone, password))

	def _show_state(self, state: RequestState[Any]):
		self._submit_btn.configure(state="disabled" if state.loading else "normal")
		if state.loading:
			self._message.configure(text="Tekshirilmoqda...", text_color=("gray10", "gray90"))
		elif state.error is not None:
			self._message.configure(text=str(state.error), text_color=ERROR_COLOR)
		else:
			self._message.configure(text="")


class HomePage(Page):
	title = "Bosh sahifa"

	def __init__(self, master, window: "MainWindow"):
		super().__init__(master, window)
		state = self.service.auth_state()
		name = state.session.name if state.session else ""
		ctk.CTkLabel(self, text=f"Xush kelibsiz, {name}", font=ctk.CTkFont(size=20, weight="bold")).pack(
			anchor="w", padx=16, pady=(16, 8)
		)

		if RoleGate(self.service.store, ["DIREKTOR", "SNABJENIYA", "PTO"]).visible:
			ctk.CTkLabel(self, text="Tasdiqlash kutilayotgan so'rovlar bo'limi sizga ochiq.").pack(
				anchor="w", padx=16, pady=4
			)


class ProjectsPage(Page):
	title = "Loyihalar"

	def __init__(self, master, window: "MainWindow"):
		super().__init__(master, window)

		search_row = ctk.CTkFrame(self)
		search_row.pack(fill="x", padx=12, pady=(12, 6))
		self._search = ctk.CTkEntry(search_row, placeholder_text="Qidirish")
		self._search.pack(side="left", fill="x", expand=True, padx=(8, 6), pady=8)
		ctk.CTkButton(search_row, text="Qidirish", command=self._apply_search).pack(side="left", padx=6, pady=8)

		self._projects = self.resource(lambda: self.service.list_projects(), deps=[""])

		if self.service.can("project:create"):
			create_row = ctk.CTkFrame(self)
			create_row.pack(fill="x", padx=12, pady=6)
			self._new_name = ctk.CTkEntry(create_row, placeholder_text="Yangi loyiha nomi")
			self._new_name.pack(side="left", fill="x", expand=True, padx=(8, 6), pady=8)
			self._create_btn = ctk.CTkButton(create_row, text="Qo'shish", command=self._create)
			self._create_btn.pack(side="left", padx=6, pady=8)
			self._create_message = ctk.CTkLabel(self, text="", text_color=ERROR_COLOR)
			self._create_message.pack(anchor="w", padx=20)
			self._create_project = self.mutation(self.service.create_project)

		ResourcePanel(self, self._projects, render_named_items).pack(fill="both", expand=True, padx=12, pady=(6, 12))
		self._projects.mount()

	def _apply_search(self):
		query = self._search.get().strip()
		self._projects.update(
			deps=[query],
			producer=lambda: self.service.list_projects(search=query or None),
		)

	def _create(self):
		name = self._new_name.get().strip()
		if not name:
			self._create_message.configure(text="Loyiha nomini kiriting.")
			return
		self._create_btn.configure(state="disabled")
		future = self._create_project.mutate({"name": name})
		future.add_done_callback(lambda done: self._window.dispatch(lambda: self._created(done)))

	def _created(self, future):
		if self._create_project.disposed:
			return
		self._create_btn.configure(state="normal")
		error = future.exception()
		if error is not None:
			self._create_message.configure(text=str(error))
			return
		self._create_message.configure(text="")
		self._new_name.delete(0, "end")
		self._projects.refetch()


class AdminHomePage(Page):
	title = "Boshqaruv paneli"

	def __init__(self, master, window: "MainWindow"):
		super().__init__(master, window)
		stats = self.resource(self.service.admin_stats)
		ResourcePanel(self, stats, render_stats).pack(fill="both", expand=True, padx=12, pady=12)
		stats.mount()


class OrganizationsPage(Page):
	title = "Kompaniyalar"

	def __init__(self, master, window: "MainWindow"):
		super().__init__(master, window)
		organizations = self.resource(self.service.list_organizations)
		ResourcePanel(self, organizations, render_named_items).pack(fill="both", expand=True, padx=12, pady=12)
		organizations.mount()


class PlaceholderPage(Page):
	def __init__(self, master, window: "MainWindow", title: str):
		super().__init__(master, window)
		ctk.CTkLabel(self, text=title, font=ctk.CTkFont(size=20, weight="bold")).pack(
			anchor="w", padx=16, pady=(16, 8)
		)
		ctk.CTkLabel(self, text="Bu bo'lim veb-versiyada mavjud.").pack(anchor="w", padx=16, pady=4)


PAGES: dict[str, type[Page]] = {
	LOGIN_PATH: LoginPage,
	HOME_PATH: HomePage,
	"/projects": ProjectsPage,
	ADMIN_HOME_PATH: AdminHomePage,
	"/admin/organizations": OrganizationsPage,
}


class MainWindow(ctk.CTk):
	def __init__(self, service: DashboardService):
		super().__init__()
		self.service = service
		self._navigator = Navigator(service.store, routes=set(PAGES) | known_routes())
		self._current_path = HOME_PATH
		self._page: Page | None = None

		self.title("Smeta: boshqaruv paneli")
		self.geometry("1100x760")
		self.minsize(900, 600)

		header = ctk.CTkFrame(self)
		header.pack(fill="x", padx=16, pady=(16, 8))
		self._status_label = ctk.CTkLabel(header, text="")
		self._status_label.pack(side="left", padx=8, pady=8)
		self._sign_out_btn = ctk.CTkButton(header, text="Chiqish", command=self._sign_out)
		self._sign_out_btn.pack(side="right", padx=8, pady=8)

		body = ctk.CTkFrame(self)
		body.pack(fill="both", expand=True, padx=16, pady=(0, 16))
		self._sidebar = ctk.CTkFrame(body, width=220)
		self._sidebar.pack(side="left", fill="y", padx=(8, 6), pady=8)
		self._content = ctk.CTkFrame(body)
		self._content.pack(side="left", fill="both", expand=True, padx=(6, 8), pady=8)

		self._unsubscribe = service.store.subscribe(self._on_auth_changed)
		self.protocol("WM_DELETE_WINDOW", self._close)
		self.navigate(HOME_PATH)

	def dispatch(self, callback: Callable[[], None]):
		self.after(0, callback)

	def navigate(self, path: str):
		target = self._navigator.resolve(path)
		self._current_path = target
		self._render_header(self.service.auth_state())
		self._render_sidebar(target)
		self._show_page(target)

	def _on_auth_changed(self, state: AuthState):
		# May fire on a worker thread (forced logout inside a request).
		self.dispatch(lambda: self.navigate(self._current_path))

	def _render_header(self, state: AuthState):
		if state.is_authenticated and state.session is not None:
			self._status_label.configure(text=f"{state.session.name} | {state.session.role.value}")
			self._sign_out_btn.configure(state="normal")
		else:
			self._status_label.configure(text="Tizimga kirilmagan")
			self._sign_out_btn.configure(state="disabled")

	def _render_sidebar(self, path: str):
		for child in self._sidebar.winfo_children():
			child.destroy()

		state = self.service.auth_state()
		if not state.is_authenticated:
			return

		in_admin = path == ADMIN_HOME_PATH or path.startswith(ADMIN_HOME_PATH + "/")
		sections = admin_sections(state.role) if in_admin else dashboard_sections(state.role)
		for section_title, items in sections:
			ctk.CTkLabel(self._sidebar, text=section_title, text_color="gray60").pack(anchor="w", padx=8, pady=(10, 2))
			for item in items:
				ctk.CTkButton(
					self._sidebar,
					text=item.title,
					anchor="w",
					fg_color="transparent" if item.target != path else None,
					command=lambda target=item.target: self.navigate(target),
				).pack(fill="x", padx=8, pady=2)

	def _show_page(self, path: str):
		if self._page is not None:
			self._page.dispose()
			self._page = None

		page_class = PAGES.get(path)
		if page_class is None:
			role = self.service.store.role
			sections = dashboard_sections(role) + admin_sections(role)
			title = next((item.title for _, items in sections for item in items if item.target == path), path)
			page: Page = PlaceholderPage(self._content, self, title)
		else:
			page = page_class(self._content, self)
		page.pack(fill="both", expand=True)
		self._page = page

	def _sign_out(self):
		self.service.sign_out()

	def _close(self):
		self._unsubscribe()
		if self._page is not None:
			self._page.dispose()
			self._page = None
		self.destroy()


def run_app() -> None:
	ctk.set_appearance_mode("System")
	ctk.set_default_color_theme("blue")

	try:
		settings = AppSettings.from_env()
	except ConfigurationError as exc:
		configure_logging()
		app = ctk.CTk()
		app.title("Smeta - Configuration Error")
		app.geometry("760x360")
		message = ctk.CTkTextbox(app)
		message.pack(fill="both", expand=True, padx=16, pady=16)
		message.insert(
			"1.0",
			"Configuration error. Fix the environment variables and restart:\n\n"
			f"{exc}\n\n"
			"See SMETA_API_URL, SMETA_TIMEOUT_SECONDS, SMETA_RETRY_ATTEMPTS, SMETA_LOG_LEVEL.\n",
		)
		app.mainloop()
		return

	configure_logging(settings.log_level)
	service = build_service(settings)
	state = service.restore()
	logger.info("Starting %s", "signed in" if state.is_authenticated else "signed out")

	window = MainWindow(service)
	window.mainloop()
