"""Static HTML documents served by the page routes.

The realtime page talks to /ws with JSON frames; everything else is a
plain form or message.
"""

_LAYOUT = """<!doctype html>
<html lang="es">
<head><meta charset="utf-8"><title>{title}</title></head>
<body>
{body}
</body>
</html>
"""


def _page(title: str, body: str) -> str:
    return _LAYOUT.format(title=title, body=body)


LOGIN_PAGE = _page(
    "Login",
    """<h1>Login</h1>
<form method="post" action="/login">
  <input name="username" placeholder="Usuario" required>
  <input name="password" type="password" placeholder="Contraseña" required>
  <button type="submit">Entrar</button>
</form>
<a href="/register">Registrarse</a>""",
)

REGISTER_PAGE = _page(
    "Registro",
    """<h1>Registro</h1>
<form method="post" action="/register">
  <input name="username" placeholder="Usuario" required>
  <input name="password" type="password" placeholder="Contraseña" required>
  <input name="email" type="email" placeholder="Email" required>
  <button type="submit">Registrarse</button>
</form>
<a href="/login">Login</a>""",
)

LOGIN_ERROR_PAGE = _page(
    "Error de login",
    """<h1>Usuario o contraseña incorrectos</h1>
<a href="/login">Volver a intentar</a>""",
)

REGISTER_ERROR_PAGE = _page(
    "Error de registro",
    """<h1>No se pudo registrar el usuario</h1>
<a href="/register">Volver a intentar</a>""",
)

DATOS_PAGE = _page(
    "Datos",
    """<h1 id="welcome"></h1>
<a href="/logout">Logout</a>

<h2>Productos</h2>
<form id="product-form">
  <input name="title" placeholder="Nombre" required>
  <input name="price" type="number" step="0.01" placeholder="Precio" required>
  <input name="thumbnail" placeholder="Imagen (URL)">
  <button type="submit">Agregar</button>
</form>
<table id="products"></table>

<h2>Chat</h2>
<form id="chat-form">
  <input name="text" placeholder="Mensaje" required>
  <button type="submit">Enviar</button>
</form>
<ul id="messages"></ul>

<script>
const ws = new WebSocket((location.protocol === "https:" ? "wss://" : "ws://") + location.host + "/ws");
let me = null;

fetch("/get-data").then(r => r.json()).then(d => {
  me = d.user;
  document.getElementById("welcome").textContent =
    "Bienvenido " + d.user.username + " (visitas: " + d.contador + ")";
});

function send(type, data) { ws.send(JSON.stringify({type, data})); }

function text(value) {
  const span = document.createElement("span");
  span.textContent = value == null ? "" : String(value);
  return span;
}

ws.onmessage = (ev) => {
  const frame = JSON.parse(ev.data);
  if (frame.type === "products") {
    const table = document.getElementById("products");
    table.replaceChildren();
    for (const p of frame.data) {
      const row = table.insertRow();
      row.insertCell().append(text(p.title));
      row.insertCell().append(text(p.price));
      row.insertCell().append(text(p.thumbnail));
    }
  } else if (frame.type === "messages") {
    const list = document.getElementById("messages");
    list.replaceChildren();
    for (const m of frame.data) {
      const item = document.createElement("li");
      item.append(text(m.author + " [" + m.date + "]: " + m.text));
      list.append(item);
    }
  }
};

document.getElementById("product-form").onsubmit = (ev) => {
  ev.preventDefault();
  const f = ev.target;
  send("update-products", {title: f.title.value, price: Number(f.price.value), thumbnail: f.thumbnail.value});
  f.reset();
};

document.getElementById("chat-form").onsubmit = (ev) => {
  ev.preventDefault();
  const f = ev.target;
  send("update-chat", {author: me ? me.username : "anon", date: new Date().toLocaleString(), text: f.text.value});
  f.reset();
};
</script>""",
)
